import logging
from typing import Optional

from fastapi import APIRouter, status, Depends, HTTPException, Query, Request
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import aliased

from core.deps import (
    CHAVE_ADMIN_ORIGINAL,
    CHAVE_PERSONIFICANDO,
    CHAVE_USUARIO,
    ContextoAutenticacao,
    get_session,
    require_super_admin,
)
from core.notificacoes import GerenciadorConexoes, get_gerenciador
from core.permissoes import pode_ser_desativado, validar_personificacao
from core.personificacao import buscar_sessao_ativa, encerrar_sessao_personificacao, iniciar_sessao_personificacao
from core.saldo import estatisticas_carteiras
from core.security import generate_hash
from core.seed import colorizar_categorias_globais, resetar_globais
from core.usuarios import buscar_usuario_por_email, criar_usuario_completo, excluir_usuario_cascata, resetar_dados_usuario
from core.utils import agora, arredondar, handle_db_exceptions
from models.categoria_model import CategoriaModel
from models.enums import StatusAssinatura, TipoUsuario
from models.forma_pagamento_model import FormaPagamentoModel
from models.historico_cancelamento_model import HistoricoCancelamentoModel
from models.sessao_admin_model import SessaoAdminModel
from models.transacao_model import TransacaoModel
from models.usuario_model import UsuarioModel
from schemas.admin_schema import PersonificarSchema
from schemas.usuario_schema import AdminAtualizarUsuarioSchema, AdminCriarUsuarioSchema, StatusUsuarioSchema, UsuarioSchema

logger = logging.getLogger(__name__)

router = APIRouter()


def _resumo_usuario(usuario: Optional[UsuarioModel]):
    if usuario is None:
        return None
    return {"id": usuario.id, "nome": usuario.nome, "email": usuario.email, "tipo_usuario": usuario.tipo_usuario}


async def _buscar_usuario(session: AsyncSession, usuario_id: int) -> UsuarioModel:
    result = await session.execute(select(UsuarioModel).where(UsuarioModel.id == usuario_id))
    usuario = result.scalars().one_or_none()
    if not usuario:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuário não encontrado")
    return usuario


async def _contar(session: AsyncSession, query) -> int:
    return (await session.execute(query)).scalar() or 0


@router.get('/stats')
async def get_estatisticas(
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
    gerenciador: GerenciadorConexoes = Depends(get_gerenciador),
):
    async with db as session:
        try:
            total_usuarios = await _contar(session, select(func.count(UsuarioModel.id)))
            ativos = await _contar(session, select(func.count(UsuarioModel.id)).where(UsuarioModel.ativo.is_(True)))
            super_admins = await _contar(
                session,
                select(func.count(UsuarioModel.id)).where(UsuarioModel.tipo_usuario == TipoUsuario.SUPER_ADMIN)
            )
            cancelados = await _contar(
                session,
                select(func.count(UsuarioModel.id)).where(UsuarioModel.status_assinatura != StatusAssinatura.ATIVA)
            )
            transacoes = await _contar(session, select(func.count(TransacaoModel.id)))
            categorias = await _contar(
                session, select(func.count(CategoriaModel.id)).where(CategoriaModel.global_.is_(True))
            )
            formas = await _contar(
                session, select(func.count(FormaPagamentoModel.id)).where(FormaPagamentoModel.global_.is_(True))
            )
        except Exception as e:
            await handle_db_exceptions(session, e)

    return {
        "totalUsers": total_usuarios,
        "activeUsers": ativos,
        "inactiveUsers": total_usuarios - ativos,
        "superAdmins": super_admins,
        "canceledSubscriptions": cancelados,
        "totalTransactions": transacoes,
        "globalCategories": categorias,
        "globalPaymentMethods": formas,
        "connectedUsers": gerenciador.estatisticas()["totalConnections"],
    }


@router.get('/recent-users')
async def get_usuarios_recentes(
    limit: int = Query(default=5, ge=1, le=50),
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    async with db as session:
        query = select(UsuarioModel).order_by(UsuarioModel.data_cadastro.desc(), UsuarioModel.id.desc()).limit(limit)
        result = await session.execute(query)
        return [UsuarioSchema.model_validate(u) for u in result.scalars().all()]


@router.get('/users')
async def get_usuarios(
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    async with db as session:
        try:
            usuarios = (await session.execute(select(UsuarioModel).order_by(UsuarioModel.id))).scalars().all()
            # listagem administrativa propaga falhas de agregação
            carteiras = await estatisticas_carteiras(session)
        except Exception as e:
            await handle_db_exceptions(session, e)

    por_usuario = {}
    for carteira in carteiras:
        atual = por_usuario.setdefault(carteira["userId"], {"transactionCount": 0, "walletBalance": arredondar(0)})
        atual["transactionCount"] += carteira["transactionCount"]
        atual["walletBalance"] = arredondar(atual["walletBalance"] + carteira["balance"])

    return [
        {
            **UsuarioSchema.model_validate(usuario).model_dump(),
            **por_usuario.get(usuario.id, {"transactionCount": 0, "walletBalance": arredondar(0)}),
        }
        for usuario in usuarios
    ]


@router.get('/users/{usuario_id}', response_model=UsuarioSchema)
async def get_usuario(
    usuario_id: int,
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    async with db as session:
        return await _buscar_usuario(session, usuario_id)


@router.post('/users', status_code=status.HTTP_201_CREATED, response_model=UsuarioSchema)
async def post_usuario(
    dados: AdminCriarUsuarioSchema,
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    async with db as session:
        if await buscar_usuario_por_email(session, dados.email):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email já está em uso.")
        try:
            usuario = await criar_usuario_completo(
                session,
                nome=dados.nome,
                email=dados.email,
                senha=dados.senha,
                telefone=dados.telefone,
                tipo_usuario=dados.tipo_usuario,
                ativo=dados.ativo,
            )
        except Exception as e:
            await handle_db_exceptions(session, e)

    logger.info(f"Usuário {usuario.id} criado pelo admin {contexto.usuario_autorizacao.id}")
    return usuario


@router.put('/users/{usuario_id}', response_model=UsuarioSchema)
async def put_usuario(
    usuario_id: int,
    dados: AdminAtualizarUsuarioSchema,
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    atualizacao = dados.model_dump(exclude_unset=True)
    async with db as session:
        usuario = await _buscar_usuario(session, usuario_id)

        if atualizacao.get("email") and atualizacao["email"].lower() != usuario.email:
            if await buscar_usuario_por_email(session, atualizacao["email"]):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email já está em uso.")
            atualizacao["email"] = atualizacao["email"].lower()
        if atualizacao.get("ativo") is False and not pode_ser_desativado(usuario):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Não é possível desativar um super administrador")
        if atualizacao.get("senha"):
            atualizacao["senha"] = generate_hash(atualizacao["senha"])

        for campo, valor in atualizacao.items():
            if valor is not None:
                setattr(usuario, campo, valor)
        try:
            await session.commit()
            await session.refresh(usuario)
            return usuario
        except Exception as e:
            await handle_db_exceptions(session, e)


@router.delete('/users/{usuario_id}')
async def delete_usuario(
    usuario_id: int,
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
    gerenciador: GerenciadorConexoes = Depends(get_gerenciador),
):
    if usuario_id == contexto.usuario_autorizacao.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Não é possível excluir seu próprio usuário")

    async with db as session:
        usuario = await _buscar_usuario(session, usuario_id)
        try:
            await excluir_usuario_cascata(session, usuario.id)
        except Exception as e:
            await handle_db_exceptions(session, e)

    await gerenciador.desconectar_usuario(usuario_id)
    logger.info(f"Usuário {usuario_id} excluído pelo admin {contexto.usuario_autorizacao.id}")
    return {"message": "Usuário excluído com sucesso"}


@router.patch('/users/{usuario_id}/status', response_model=UsuarioSchema)
async def patch_status_usuario(
    usuario_id: int,
    dados: StatusUsuarioSchema,
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
    gerenciador: GerenciadorConexoes = Depends(get_gerenciador),
):
    async with db as session:
        usuario = await _buscar_usuario(session, usuario_id)
        if not dados.ativo and not pode_ser_desativado(usuario):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Não é possível desativar um super administrador")

        try:
            if dados.ativo and not usuario.ativo:
                usuario.data_cancelamento = None
                usuario.motivo_cancelamento = None
                usuario.data_expiracao_assinatura = None
                usuario.status_assinatura = StatusAssinatura.ATIVA
                await session.execute(
                    update(HistoricoCancelamentoModel)
                    .where(
                        HistoricoCancelamentoModel.usuario_id == usuario.id,
                        HistoricoCancelamentoModel.reativado_em.is_(None),
                    )
                    .values(reativado_em=agora())
                )
            usuario.ativo = dados.ativo
            await session.commit()
            await session.refresh(usuario)
        except Exception as e:
            await handle_db_exceptions(session, e)

    if not dados.ativo:
        await gerenciador.desconectar_usuario(usuario_id)
    logger.info(f"Usuário {usuario_id} {'ativado' if dados.ativo else 'desativado'} pelo admin {contexto.usuario_autorizacao.id}")
    return usuario


@router.post('/users/{usuario_id}/reset')
async def reset_usuario(
    usuario_id: int,
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    if usuario_id == contexto.usuario_autorizacao.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Não é possível resetar seu próprio usuário")

    async with db as session:
        usuario = await _buscar_usuario(session, usuario_id)
        try:
            await resetar_dados_usuario(session, usuario.id)
        except Exception as e:
            await handle_db_exceptions(session, e)

    return {"message": "Dados do usuário resetados com sucesso"}


@router.post('/impersonate')
async def personificar(
    dados: PersonificarSchema,
    request: Request,
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    if contexto.personificando:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Já está personificando um usuário. Encerre a personificação atual primeiro."
        )

    admin = contexto.usuario_autorizacao
    async with db as session:
        result = await session.execute(select(UsuarioModel).where(UsuarioModel.id == dados.targetUserId))
        alvo = validar_personificacao(admin, result.scalars().one_or_none())
        try:
            sessao_admin = await iniciar_sessao_personificacao(session, admin.id, alvo.id)
        except Exception as e:
            await handle_db_exceptions(session, e)

    request.session.clear()
    request.session[CHAVE_USUARIO] = alvo.id
    request.session[CHAVE_ADMIN_ORIGINAL] = admin.id
    request.session[CHAVE_PERSONIFICANDO] = True

    return {
        "success": True,
        "message": f"Personificando {alvo.nome}",
        "user": UsuarioSchema.model_validate(alvo),
        "originalAdmin": _resumo_usuario(admin),
        "sessionId": sessao_admin.id,
    }


@router.post('/stop-impersonation')
async def parar_personificacao(
    request: Request,
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    if not contexto.personificando:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Nenhuma sessão de personificação ativa")

    admin = contexto.admin_original
    async with db as session:
        try:
            await encerrar_sessao_personificacao(session, admin.id, contexto.usuario.id)
        except Exception as e:
            await handle_db_exceptions(session, e)

    request.session.clear()
    request.session[CHAVE_USUARIO] = admin.id

    return {
        "success": True,
        "message": "Personificação encerrada",
        "user": UsuarioSchema.model_validate(admin),
    }


@router.get('/impersonation-status')
async def status_personificacao(
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    if not contexto.personificando:
        return {"isImpersonating": False, "impersonatedUser": None, "originalAdmin": None, "session": None}

    async with db as session:
        sessao_admin = await buscar_sessao_ativa(session, contexto.usuario.id)

    return {
        "isImpersonating": True,
        "impersonatedUser": _resumo_usuario(contexto.usuario),
        "originalAdmin": _resumo_usuario(contexto.admin_original),
        "session": {
            "id": sessao_admin.id,
            "startedAt": sessao_admin.data_inicio,
        } if sessao_admin else None,
    }


@router.post('/reset-globals')
async def reset_globais(
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    async with db as session:
        try:
            resultado = await resetar_globais(session)
        except Exception as e:
            await handle_db_exceptions(session, e)
    return {"success": True, "message": "Dados globais resetados com sucesso", "data": resultado}


@router.post('/categories/colorize-global')
async def colorizar_globais(
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    async with db as session:
        try:
            quantidade = await colorizar_categorias_globais(session)
        except Exception as e:
            await handle_db_exceptions(session, e)
    return {
        "success": True,
        "message": f"{quantidade} categorias globais foram colorizadas com sucesso!",
        "count": quantidade,
    }


@router.get('/audit-log')
async def get_log_auditoria(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    administrador = aliased(UsuarioModel)
    alvo = aliased(UsuarioModel)
    async with db as session:
        try:
            total = await _contar(session, select(func.count(SessaoAdminModel.id)))
            query = (
                select(
                    SessaoAdminModel,
                    administrador.nome.label("admin_nome"),
                    administrador.email.label("admin_email"),
                    alvo.nome.label("alvo_nome"),
                    alvo.email.label("alvo_email"),
                )
                .outerjoin(administrador, SessaoAdminModel.super_admin_id == administrador.id)
                .outerjoin(alvo, SessaoAdminModel.target_user_id == alvo.id)
                .order_by(SessaoAdminModel.data_inicio.desc(), SessaoAdminModel.id.desc())
                .limit(limit)
                .offset(offset)
            )
            linhas = (await session.execute(query)).all()
        except Exception as e:
            await handle_db_exceptions(session, e)

    logs = [
        {
            "id": sessao.id,
            "superAdminId": sessao.super_admin_id,
            "superAdminNome": admin_nome,
            "superAdminEmail": admin_email,
            "targetUserId": sessao.target_user_id,
            "targetUserNome": alvo_nome,
            "targetUserEmail": alvo_email,
            "dataInicio": sessao.data_inicio,
            "dataFim": sessao.data_fim,
            "ativo": sessao.ativo,
            "acao": "Personificação ativa" if sessao.data_fim is None else "Personificação encerrada",
        }
        for sessao, admin_nome, admin_email, alvo_nome, alvo_email in linhas
    ]
    return {"logs": logs, "total": total, "limit": limit, "offset": offset}
