from fastapi import APIRouter, status, Depends, HTTPException, Query
from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from core.deps import get_current_user, get_session
from core.normalizacao import normalizar_tipo
from core.utils import handle_db_exceptions
from models.categoria_model import CategoriaModel
from models.usuario_model import UsuarioModel
from models.transacao_model import TransacaoModel
from schemas.categoria_schema import CategoriaSchema, CategoriaSchemaUpdate, CategoriaSchemaId
from sqlalchemy.future import select
from models.enums import TipoTransacao


router = APIRouter()


def categoria_visivel(categoria: CategoriaModel, usuario: UsuarioModel) -> bool:
    return bool(categoria.global_) or categoria.usuario_id == usuario.id


async def buscar_categoria(session: AsyncSession, categoria_id: int) -> Optional[CategoriaModel]:
    result = await session.execute(select(CategoriaModel).filter(CategoriaModel.id == categoria_id))
    return result.scalars().unique().one_or_none()


async def _nome_duplicado(
    session: AsyncSession,
    usuario: UsuarioModel,
    nome: str,
    tipo: TipoTransacao,
    ignorar_id: Optional[int] = None,
) -> bool:
    query = select(CategoriaModel.id).where(
        or_(CategoriaModel.usuario_id == usuario.id, CategoriaModel.global_.is_(True)),
        func.lower(CategoriaModel.nome) == nome.strip().lower(),
        CategoriaModel.tipo == tipo,
    )
    if ignorar_id is not None:
        query = query.where(CategoriaModel.id != ignorar_id)
    result = await session.execute(query)
    return result.first() is not None


def _erro_duplicada(tipo: TipoTransacao) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Já existe uma categoria {tipo.value.lower()} com este nome"
    )


@router.get('', response_model=List[CategoriaSchemaId])
async def get_categorias(
    tipo: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user)
):
    async with db as session:
        query = select(CategoriaModel).where(
            or_(CategoriaModel.usuario_id == usuario_logado.id, CategoriaModel.global_.is_(True))
        )
        if tipo:
            try:
                query = query.where(CategoriaModel.tipo == normalizar_tipo(tipo))
            except ValueError as e:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        query = query.order_by(CategoriaModel.global_.desc(), CategoriaModel.nome)
        result = await session.execute(query)
        return result.scalars().unique().all()


@router.get('/{categoria_id}', response_model=CategoriaSchemaId)
async def get_categoria(
    categoria_id: int,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user)
):
    async with db as session:
        categoria = await buscar_categoria(session, categoria_id)
        if not categoria:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Categoria não encontrada")
        if not categoria_visivel(categoria, usuario_logado):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Acesso negado")
        return categoria


@router.post('', status_code=status.HTTP_201_CREATED, response_model=CategoriaSchemaId)
async def post_categoria(
    categoria: CategoriaSchema,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user)
):
    async with db as session:
        if await _nome_duplicado(session, usuario_logado, categoria.nome, categoria.tipo):
            raise _erro_duplicada(categoria.tipo)

        # categorias criadas por usuários são sempre pessoais
        nova_categoria: CategoriaModel = CategoriaModel(
            nome=categoria.nome.strip(),
            tipo=categoria.tipo,
            cor=categoria.cor,
            icone=categoria.icone,
            descricao=categoria.descricao,
            usuario_id=usuario_logado.id,
            global_=False,
        )
        try:
            session.add(nova_categoria)
            await session.commit()
            await session.refresh(nova_categoria)
            return nova_categoria
        except Exception as e:
            await handle_db_exceptions(session, e)


@router.put('/{categoria_id}', response_model=CategoriaSchemaId)
async def put_categoria(
    categoria_id: int,
    categoria: CategoriaSchemaUpdate,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user)
):
    async with db as session:
        categoria_up = await buscar_categoria(session, categoria_id)

        if not categoria_up:
            raise HTTPException(detail="Categoria não encontrada", status_code=status.HTTP_404_NOT_FOUND)
        if categoria_up.global_:
            raise HTTPException(
                detail="Categorias globais não podem ser modificadas",
                status_code=status.HTTP_403_FORBIDDEN
            )
        if categoria_up.usuario_id != usuario_logado.id:
            raise HTTPException(detail="Acesso negado", status_code=status.HTTP_403_FORBIDDEN)

        atualizacao = categoria.model_dump(exclude_unset=True)
        nome = atualizacao.get("nome") or categoria_up.nome
        tipo = atualizacao.get("tipo") or TipoTransacao(categoria_up.tipo)
        if ("nome" in atualizacao or "tipo" in atualizacao) and await _nome_duplicado(
            session, usuario_logado, nome, tipo, ignorar_id=categoria_up.id
        ):
            raise _erro_duplicada(tipo)

        for campo, valor in atualizacao.items():
            if valor is not None:
                setattr(categoria_up, campo, valor)

        try:
            await session.commit()
            await session.refresh(categoria_up)
            return categoria_up
        except Exception as e:
            await handle_db_exceptions(session, e)


@router.delete('/{categoria_id}')
async def delete_categoria(
    categoria_id: int,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user)
):
    async with db as session:
        categoria_del = await buscar_categoria(session, categoria_id)

        if not categoria_del:
            raise HTTPException(detail="Categoria não encontrada", status_code=status.HTTP_404_NOT_FOUND)
        if categoria_del.global_:
            raise HTTPException(
                detail="Categorias globais não podem ser excluídas",
                status_code=status.HTTP_403_FORBIDDEN
            )
        if categoria_del.usuario_id != usuario_logado.id:
            raise HTTPException(detail="Acesso negado", status_code=status.HTTP_403_FORBIDDEN)

        # Verificar se existem transações associadas à categoria
        uso = await session.execute(
            select(func.count(TransacaoModel.id)).where(TransacaoModel.categoria_id == categoria_id)
        )
        if uso.scalar():
            raise HTTPException(
                detail="Não é possível excluir a categoria porque ela está sendo usada em transações",
                status_code=status.HTTP_400_BAD_REQUEST
            )

        try:
            await session.delete(categoria_del)
            await session.commit()
        except Exception as e:
            await handle_db_exceptions(session, e)

        return {"message": "Categoria excluída com sucesso"}
