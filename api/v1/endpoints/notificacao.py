import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from core.deps import ContextoAutenticacao, require_super_admin
from core.notificacoes import GerenciadorConexoes, criar_notificacao, get_gerenciador
from models.enums import TipoNotificacao, TipoUsuario
from schemas.admin_schema import BroadcastSchema, NotificacaoSchema

logger = logging.getLogger(__name__)

router = APIRouter()


def origem_admin(contexto: ContextoAutenticacao) -> Dict[str, Any]:
    admin = contexto.usuario_autorizacao
    return {"id": str(admin.id), "name": admin.nome, "role": TipoUsuario(admin.tipo_usuario).value}


def _dados_extras(dados) -> Dict[str, Any]:
    extras = {"persistent": dados.persistent}
    if dados.autoClose is not None:
        extras["autoClose"] = dados.autoClose
    return extras


def _resposta(notificacao: Dict[str, Any], quantidade: int, mensagem: str = "Notificação enviada com sucesso"):
    return {
        "success": True,
        "message": mensagem,
        "notification": {
            "id": notificacao["id"],
            "type": notificacao["type"],
            "title": notificacao["title"],
            "timestamp": notificacao["timestamp"],
            "targetCount": quantidade,
        },
    }


def _conectados_com_papel(gerenciador: GerenciadorConexoes, papel: TipoUsuario) -> int:
    return sum(1 for u in gerenciador.usuarios_conectados() if u["userRole"] == papel.value)


@router.post('/send')
async def enviar_notificacao(
    dados: NotificacaoSchema,
    contexto: ContextoAutenticacao = Depends(require_super_admin),
    gerenciador: GerenciadorConexoes = Depends(get_gerenciador),
):
    notificacao = criar_notificacao(
        tipo=dados.type,
        titulo=dados.title,
        mensagem=dados.message,
        origem=origem_admin(contexto),
        dados=_dados_extras(dados),
    )

    if dados.targetUser is not None:
        quantidade = 1 if gerenciador.usuario_conectado(dados.targetUser) else 0
        await gerenciador.broadcast(notificacao, [dados.targetUser])
    else:
        papel = dados.targetRole or TipoUsuario.SUPER_ADMIN
        quantidade = _conectados_com_papel(gerenciador, papel)
        await gerenciador.broadcast_por_papel(notificacao, papel.value)

    logger.info(f"Notificação {notificacao['id']} enviada por {contexto.usuario_autorizacao.id} para {quantidade} destino(s)")
    return _resposta(notificacao, quantidade)


@router.post('/broadcast')
async def broadcast_notificacao(
    dados: BroadcastSchema,
    contexto: ContextoAutenticacao = Depends(require_super_admin),
    gerenciador: GerenciadorConexoes = Depends(get_gerenciador),
):
    notificacao = criar_notificacao(
        tipo=dados.type,
        titulo=dados.title,
        mensagem=dados.message,
        origem=origem_admin(contexto),
        dados=_dados_extras(dados),
        prefixo="broadcast",
    )
    quantidade = _conectados_com_papel(gerenciador, TipoUsuario.SUPER_ADMIN)
    await gerenciador.broadcast_por_papel(notificacao, TipoUsuario.SUPER_ADMIN.value)
    return _resposta(notificacao, quantidade, f"Broadcast enviado para {quantidade} SuperAdmins")


@router.post('/test')
async def testar_notificacao(
    contexto: ContextoAutenticacao = Depends(require_super_admin),
    gerenciador: GerenciadorConexoes = Depends(get_gerenciador),
):
    admin = contexto.usuario_autorizacao
    notificacao = criar_notificacao(
        tipo=TipoNotificacao.INFO,
        titulo="Teste de Notificação",
        mensagem=f"Notificação de teste enviada para {admin.nome}",
        origem=origem_admin(contexto),
        prefixo="test",
    )
    entregue = await gerenciador.broadcast(notificacao, [admin.id])
    return _resposta(notificacao, 1 if entregue else 0, "Notificação de teste enviada")


@router.get('/stats')
async def estatisticas_notificacoes(
    contexto: ContextoAutenticacao = Depends(require_super_admin),
    gerenciador: GerenciadorConexoes = Depends(get_gerenciador),
):
    return {"success": True, "data": gerenciador.estatisticas()}
