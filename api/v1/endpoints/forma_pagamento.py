import logging
from typing import List, Optional

from fastapi import APIRouter, status, Depends, HTTPException
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from api.v1.endpoints.carteira import obter_carteira_usuario
from core.deps import get_current_user, get_session
from core.saldo import totais_por_forma_pagamento
from core.utils import handle_db_exceptions
from models.forma_pagamento_model import FormaPagamentoModel
from models.transacao_model import TransacaoModel
from models.usuario_model import UsuarioModel
from schemas.forma_pagamento_schema import FormaPagamentoSchema, FormaPagamentoSchemaUpdate, FormaPagamentoSchemaId

logger = logging.getLogger(__name__)

router = APIRouter()


async def buscar_forma_pagamento(session: AsyncSession, forma_id: int) -> Optional[FormaPagamentoModel]:
    result = await session.execute(select(FormaPagamentoModel).where(FormaPagamentoModel.id == forma_id))
    return result.scalars().one_or_none()


async def forma_pagamento_padrao(session: AsyncSession, usuario_id: int) -> Optional[FormaPagamentoModel]:
    """PIX global, senão a primeira global ativa, senão a primeira pessoal ativa."""
    consultas = (
        select(FormaPagamentoModel).where(
            FormaPagamentoModel.global_.is_(True),
            FormaPagamentoModel.ativo.is_(True),
            FormaPagamentoModel.nome == "PIX",
        ),
        select(FormaPagamentoModel).where(
            FormaPagamentoModel.global_.is_(True),
            FormaPagamentoModel.ativo.is_(True),
        ).order_by(FormaPagamentoModel.id),
        select(FormaPagamentoModel).where(
            FormaPagamentoModel.usuario_id == usuario_id,
            FormaPagamentoModel.ativo.is_(True),
        ).order_by(FormaPagamentoModel.id),
    )
    for query in consultas:
        forma = (await session.execute(query)).scalars().first()
        if forma:
            return forma
    return None


async def _nome_duplicado(session: AsyncSession, usuario_id: int, nome: str, ignorar_id: Optional[int] = None) -> bool:
    query = select(FormaPagamentoModel.id).where(
        or_(FormaPagamentoModel.usuario_id == usuario_id, FormaPagamentoModel.global_.is_(True)),
        func.lower(FormaPagamentoModel.nome) == nome.strip().lower(),
    )
    if ignorar_id is not None:
        query = query.where(FormaPagamentoModel.id != ignorar_id)
    return (await session.execute(query)).first() is not None


async def _forma_editavel(session: AsyncSession, forma_id: int, usuario: UsuarioModel) -> FormaPagamentoModel:
    forma = await buscar_forma_pagamento(session, forma_id)
    if not forma:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Forma de pagamento não encontrada")
    if forma.global_ or forma.usuario_id != usuario.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Você não pode editar esta forma de pagamento"
        )
    return forma


@router.get('', response_model=List[FormaPagamentoSchemaId])
async def get_formas_pagamento(
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user)
):
    async with db as session:
        query = select(FormaPagamentoModel).where(
            FormaPagamentoModel.ativo.is_(True),
            or_(FormaPagamentoModel.global_.is_(True), FormaPagamentoModel.usuario_id == usuario_logado.id),
        ).order_by(FormaPagamentoModel.nome)
        result = await session.execute(query)
        return result.scalars().all()


@router.get('/global', response_model=List[FormaPagamentoSchemaId])
async def get_formas_pagamento_globais(db: AsyncSession = Depends(get_session)):
    async with db as session:
        query = select(FormaPagamentoModel).where(
            FormaPagamentoModel.global_.is_(True),
            FormaPagamentoModel.ativo.is_(True),
        ).order_by(FormaPagamentoModel.nome)
        result = await session.execute(query)
        return result.scalars().all()


@router.get('/totals')
async def get_totais_formas_pagamento(
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user)
):
    async with db as session:
        carteira = await obter_carteira_usuario(session, usuario_logado.id)
        try:
            return await totais_por_forma_pagamento(session, usuario_logado.id, carteira.id)
        except Exception as e:
            await handle_db_exceptions(session, e)


@router.get('/{forma_id}', response_model=FormaPagamentoSchemaId)
async def get_forma_pagamento(
    forma_id: int,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user)
):
    async with db as session:
        forma = await buscar_forma_pagamento(session, forma_id)
        if not forma:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Forma de pagamento não encontrada")
        if not forma.global_ and forma.usuario_id != usuario_logado.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Acesso negado")
        return forma


@router.post('', status_code=status.HTTP_201_CREATED, response_model=FormaPagamentoSchemaId)
async def post_forma_pagamento(
    forma: FormaPagamentoSchema,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user)
):
    async with db as session:
        if await _nome_duplicado(session, usuario_logado.id, forma.nome):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Já existe uma forma de pagamento com este nome"
            )

        nova_forma = FormaPagamentoModel(
            nome=forma.nome.strip(),
            descricao=forma.descricao,
            icone=forma.icone,
            cor=forma.cor,
            usuario_id=usuario_logado.id,
            global_=False,
            ativo=True,
        )
        try:
            session.add(nova_forma)
            await session.commit()
            await session.refresh(nova_forma)
            return nova_forma
        except Exception as e:
            await handle_db_exceptions(session, e)


@router.put('/{forma_id}', response_model=FormaPagamentoSchemaId)
async def put_forma_pagamento(
    forma_id: int,
    forma: FormaPagamentoSchemaUpdate,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user)
):
    async with db as session:
        forma_up = await _forma_editavel(session, forma_id, usuario_logado)

        atualizacao = forma.model_dump(exclude_unset=True)
        if atualizacao.get("nome") and await _nome_duplicado(
            session, usuario_logado.id, atualizacao["nome"], ignorar_id=forma_up.id
        ):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Já existe uma forma de pagamento com este nome"
            )

        for campo, valor in atualizacao.items():
            if valor is not None:
                setattr(forma_up, campo, valor)

        try:
            await session.commit()
            await session.refresh(forma_up)
            return forma_up
        except Exception as e:
            await handle_db_exceptions(session, e)


@router.delete('/{forma_id}')
async def delete_forma_pagamento(
    forma_id: int,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user)
):
    async with db as session:
        forma_del = await _forma_editavel(session, forma_id, usuario_logado)

        uso = await session.execute(
            select(func.count(TransacaoModel.id)).where(TransacaoModel.forma_pagamento_id == forma_id)
        )
        if uso.scalar():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Não é possível excluir a forma de pagamento porque ela está sendo usada em transações"
            )

        try:
            await session.delete(forma_del)
            await session.commit()
        except Exception as e:
            await handle_db_exceptions(session, e)

        logger.info(f"Forma de pagamento {forma_id} excluída pelo usuário {usuario_logado.id}")
        return {"message": "Forma de pagamento excluída com sucesso"}
