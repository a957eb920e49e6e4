import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, status, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from api.v1.endpoints.carteira import obter_carteira_usuario
from api.v1.endpoints.categoria import buscar_categoria, categoria_visivel
from api.v1.endpoints.forma_pagamento import buscar_forma_pagamento, forma_pagamento_padrao
from core.deps import ContextoAutenticacao, get_contexto_autenticacao, get_session
from core.notificacoes import GerenciadorConexoes, criar_notificacao, get_gerenciador
from core.utils import handle_db_exceptions
from models.carteira_model import CarteiraModel
from models.categoria_model import CategoriaModel
from models.enums import TipoNotificacao, TipoTransacao
from models.forma_pagamento_model import FormaPagamentoModel
from models.transacao_model import TransacaoModel
from models.usuario_model import UsuarioModel
from schemas.transacao_schema import TransacaoSchema, TransacaoSchemaUpdate, TransacaoSchemaId

logger = logging.getLogger(__name__)

router = APIRouter()


def consulta_com_nomes():
    return (
        select(
            TransacaoModel,
            CategoriaModel.nome.label("categoria_nome"),
            FormaPagamentoModel.nome.label("forma_pagamento_nome"),
        )
        .outerjoin(CategoriaModel, TransacaoModel.categoria_id == CategoriaModel.id)
        .outerjoin(FormaPagamentoModel, TransacaoModel.forma_pagamento_id == FormaPagamentoModel.id)
    )


def transacao_para_schema(transacao: TransacaoModel, categoria_nome=None, forma_pagamento_nome=None) -> TransacaoSchemaId:
    dados = TransacaoSchemaId.model_validate(transacao)
    return dados.model_copy(update={
        "categoria_nome": categoria_nome,
        "forma_pagamento_nome": forma_pagamento_nome,
    })


def _origem(contexto: ContextoAutenticacao) -> Dict[str, Any]:
    usuario = contexto.usuario
    return {
        "id": str(usuario.id),
        "name": usuario.nome,
        "role": usuario.tipo_usuario.value if usuario.tipo_usuario else None,
        "isImpersonated": contexto.personificando,
    }


def _notificar(
    tarefas: BackgroundTasks,
    gerenciador: GerenciadorConexoes,
    contexto: ContextoAutenticacao,
    evento: str,
    tipo: TipoNotificacao,
    titulo: str,
    mensagem: str,
    transacao: Dict[str, Any],
) -> None:
    notificacao = criar_notificacao(
        tipo=tipo,
        titulo=titulo,
        mensagem=mensagem,
        origem=_origem(contexto),
        dados={"event": evento, "transaction": transacao},
    )
    # entrega best-effort depois da resposta; usuário desconectado simplesmente não recebe
    tarefas.add_task(gerenciador.broadcast, notificacao, [contexto.usuario.id])


async def _validar_categoria(session: AsyncSession, categoria_id: int, tipo: TipoTransacao, usuario: UsuarioModel) -> CategoriaModel:
    categoria = await buscar_categoria(session, categoria_id)
    if not categoria:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Categoria não encontrada")
    if not categoria_visivel(categoria, usuario):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Acesso negado à categoria")
    if TipoTransacao(categoria.tipo) != TipoTransacao(tipo):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Tipo de transação incompatível com a categoria. A categoria é do tipo {TipoTransacao(categoria.tipo).value}"
        )
    return categoria


async def _validar_forma_pagamento(session: AsyncSession, forma_id: Optional[int], usuario: UsuarioModel) -> FormaPagamentoModel:
    if not forma_id:
        forma = await forma_pagamento_padrao(session, usuario.id)
        if not forma:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nenhum método de pagamento disponível")
        return forma

    forma = await buscar_forma_pagamento(session, forma_id)
    if not forma:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Forma de pagamento não encontrada")
    if not forma.global_ and forma.usuario_id != usuario.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Acesso negado à forma de pagamento")
    return forma


async def _transacao_do_usuario(session: AsyncSession, transacao_id: int, usuario: UsuarioModel) -> TransacaoModel:
    result = await session.execute(select(TransacaoModel).where(TransacaoModel.id == transacao_id))
    transacao = result.scalars().one_or_none()
    if not transacao:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transação não encontrada")

    carteira = await obter_carteira_usuario(session, usuario.id)
    if transacao.carteira_id != carteira.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Acesso negado")
    return transacao


@router.get('', response_model=List[TransacaoSchemaId])
async def get_transacoes(
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(get_contexto_autenticacao),
):
    async with db as session:
        carteira = await obter_carteira_usuario(session, contexto.usuario.id)
        query = (
            consulta_com_nomes()
            .where(TransacaoModel.carteira_id == carteira.id)
            .order_by(TransacaoModel.data_transacao.desc(), TransacaoModel.data_registro.desc())
        )
        result = await session.execute(query)
        return [transacao_para_schema(*linha) for linha in result.all()]


@router.get('/recent', response_model=List[TransacaoSchemaId])
async def get_transacoes_recentes(
    limit: int = Query(default=5, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(get_contexto_autenticacao),
):
    async with db as session:
        carteira = await obter_carteira_usuario(session, contexto.usuario.id)
        query = (
            consulta_com_nomes()
            .where(TransacaoModel.carteira_id == carteira.id)
            .order_by(TransacaoModel.data_transacao.desc(), TransacaoModel.data_registro.desc())
            .limit(limit)
        )
        result = await session.execute(query)
        return [transacao_para_schema(*linha) for linha in result.all()]


@router.get('/{transacao_id}', response_model=TransacaoSchemaId)
async def get_transacao(
    transacao_id: int,
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(get_contexto_autenticacao),
):
    async with db as session:
        await _transacao_do_usuario(session, transacao_id, contexto.usuario)
        result = await session.execute(consulta_com_nomes().where(TransacaoModel.id == transacao_id))
        return transacao_para_schema(*result.one())


@router.post('', status_code=status.HTTP_201_CREATED, response_model=TransacaoSchemaId)
async def post_transacao(
    transacao: TransacaoSchema,
    tarefas: BackgroundTasks,
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(get_contexto_autenticacao),
    gerenciador: GerenciadorConexoes = Depends(get_gerenciador),
):
    usuario = contexto.usuario
    async with db as session:
        carteira: CarteiraModel = await obter_carteira_usuario(session, usuario.id)
        if transacao.carteira_id and transacao.carteira_id != carteira.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Acesso negado à carteira")

        categoria = await _validar_categoria(session, transacao.categoria_id, transacao.tipo, usuario)
        forma = await _validar_forma_pagamento(session, transacao.forma_pagamento_id, usuario)

        nova_transacao = TransacaoModel(
            carteira_id=carteira.id,
            categoria_id=categoria.id,
            forma_pagamento_id=forma.id,
            tipo=transacao.tipo,
            valor=transacao.valor,
            data_transacao=transacao.data_transacao,
            descricao=transacao.descricao,
            metodo_pagamento=transacao.metodo_pagamento or forma.nome,
            status=transacao.status,
        )
        try:
            session.add(nova_transacao)
            await session.commit()
            await session.refresh(nova_transacao)
        except Exception as e:
            await handle_db_exceptions(session, e)

    resposta = transacao_para_schema(nova_transacao, categoria.nome, forma.nome)
    logger.info(f"Transação {nova_transacao.id} criada na carteira {carteira.id}")
    _notificar(
        tarefas, gerenciador, contexto,
        evento="transaction.created",
        tipo=TipoNotificacao.SUCCESS,
        titulo="Transação criada",
        mensagem=f"{resposta.tipo.value} de R$ {resposta.valor} registrada: {resposta.descricao}",
        transacao=resposta.model_dump(mode="json"),
    )
    return resposta


async def _atualizar_transacao(
    transacao_id: int,
    transacao: TransacaoSchemaUpdate,
    tarefas: BackgroundTasks,
    session: AsyncSession,
    contexto: ContextoAutenticacao,
    gerenciador: GerenciadorConexoes,
) -> TransacaoSchemaId:
    usuario = contexto.usuario
    transacao_up = await _transacao_do_usuario(session, transacao_id, usuario)
    atualizacao = transacao.model_dump(exclude_unset=True)

    if atualizacao.get("categoria_id") is not None or atualizacao.get("tipo") is not None:
        tipo_efetivo = atualizacao.get("tipo") or TipoTransacao(transacao_up.tipo)
        categoria_efetiva = atualizacao.get("categoria_id") or transacao_up.categoria_id
        await _validar_categoria(session, categoria_efetiva, tipo_efetivo, usuario)

    if "forma_pagamento_id" in atualizacao:
        forma = await _validar_forma_pagamento(session, atualizacao["forma_pagamento_id"], usuario)
        atualizacao["forma_pagamento_id"] = forma.id

    for campo, valor in atualizacao.items():
        if valor is not None:
            setattr(transacao_up, campo, valor)

    try:
        await session.commit()
    except Exception as e:
        await handle_db_exceptions(session, e)

    result = await session.execute(consulta_com_nomes().where(TransacaoModel.id == transacao_id))
    resposta = transacao_para_schema(*result.one())
    _notificar(
        tarefas, gerenciador, contexto,
        evento="transaction.updated",
        tipo=TipoNotificacao.INFO,
        titulo="Transação atualizada",
        mensagem=f"Transação atualizada: {resposta.descricao}",
        transacao=resposta.model_dump(mode="json"),
    )
    return resposta


@router.put('/{transacao_id}', response_model=TransacaoSchemaId)
async def put_transacao(
    transacao_id: int,
    transacao: TransacaoSchemaUpdate,
    tarefas: BackgroundTasks,
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(get_contexto_autenticacao),
    gerenciador: GerenciadorConexoes = Depends(get_gerenciador),
):
    async with db as session:
        return await _atualizar_transacao(transacao_id, transacao, tarefas, session, contexto, gerenciador)


@router.patch('/{transacao_id}', response_model=TransacaoSchemaId)
async def patch_transacao(
    transacao_id: int,
    transacao: TransacaoSchemaUpdate,
    tarefas: BackgroundTasks,
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(get_contexto_autenticacao),
    gerenciador: GerenciadorConexoes = Depends(get_gerenciador),
):
    async with db as session:
        return await _atualizar_transacao(transacao_id, transacao, tarefas, session, contexto, gerenciador)


@router.delete('/{transacao_id}')
async def delete_transacao(
    transacao_id: int,
    tarefas: BackgroundTasks,
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(get_contexto_autenticacao),
    gerenciador: GerenciadorConexoes = Depends(get_gerenciador),
):
    async with db as session:
        transacao_del = await _transacao_do_usuario(session, transacao_id, contexto.usuario)
        removida = TransacaoSchemaId.model_validate(transacao_del).model_dump(mode="json")
        try:
            await session.delete(transacao_del)
            await session.commit()
        except Exception as e:
            await handle_db_exceptions(session, e)

    _notificar(
        tarefas, gerenciador, contexto,
        evento="transaction.deleted",
        tipo=TipoNotificacao.WARNING,
        titulo="Transação excluída",
        mensagem=f"Transação excluída: {removida['descricao']}",
        transacao=removida,
    )
    return {"message": "Transação excluída com sucesso"}
