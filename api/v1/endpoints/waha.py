"""
Webhook do WAHA (gateway de WhatsApp).

Cada hash configurado em ``WAHA_WEBHOOK_HASHES`` autoriza exatamente uma
sessão. Os eventos aceitos viram notificações para os super admins conectados.
"""
import logging
from collections import Counter
from typing import Any, Dict, Optional

from fastapi import APIRouter, status, Depends, Request
from fastapi.responses import JSONResponse
from starlette.requests import HTTPConnection

from core.configs import settings
from core.deps import ContextoAutenticacao, require_super_admin
from core.notificacoes import GerenciadorConexoes, criar_notificacao, get_gerenciador
from core.utils import agora
from models.enums import TipoNotificacao, TipoUsuario

logger = logging.getLogger(__name__)

router = APIRouter()

ORIGEM_WAHA = {"id": "waha", "name": "WAHA", "role": "system"}


class EstatisticasWebhook:

    def __init__(self):
        self.eventos: Counter = Counter()
        self.rejeitados: Counter = Counter()
        self.ultimo_evento: Optional[str] = None

    def registrar(self, evento: str) -> None:
        self.eventos[evento] += 1
        self.ultimo_evento = agora().isoformat()

    def rejeitar(self, motivo: str) -> None:
        self.rejeitados[motivo] += 1

    def resumo(self) -> Dict[str, Any]:
        return {
            "totalEvents": sum(self.eventos.values()),
            "eventsByType": dict(self.eventos),
            "rejected": dict(self.rejeitados),
            "lastEventAt": self.ultimo_evento,
        }


def get_estatisticas_webhook(conn: HTTPConnection) -> EstatisticasWebhook:
    estado = conn.app.state
    if getattr(estado, "estatisticas_waha", None) is None:
        estado.estatisticas_waha = EstatisticasWebhook()
    return estado.estatisticas_waha


def notificacao_do_evento(evento: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Traduz um evento do WAHA em notificação, ou None para eventos não tratados."""
    tipo_evento = evento["event"]
    sessao = evento["session"]
    payload = evento.get("payload") or {}

    if tipo_evento == "message":
        return criar_notificacao(
            tipo=TipoNotificacao.INFO,
            titulo="Nova Mensagem WhatsApp",
            mensagem=f"Mensagem recebida na sessão {sessao}",
            origem=ORIGEM_WAHA,
            dados={"event": "waha.message", "session": sessao, "message": payload},
            prefixo="waha_message",
        )
    if tipo_evento == "message.status":
        return criar_notificacao(
            tipo=TipoNotificacao.INFO,
            titulo="Status da Mensagem Atualizado",
            mensagem=f"Status atualizado na sessão {sessao}",
            origem=ORIGEM_WAHA,
            dados={"event": "waha.message.status", "session": sessao, "status": payload},
            prefixo="waha_status",
        )
    if tipo_evento == "session.status":
        status_sessao = payload.get("status")
        return criar_notificacao(
            tipo=TipoNotificacao.SUCCESS if status_sessao == "WORKING" else TipoNotificacao.WARNING,
            titulo="Status da Sessão WhatsApp",
            mensagem=f"Sessão {sessao}: {status_sessao}",
            origem=ORIGEM_WAHA,
            dados={"event": "waha.session.status", "session": sessao, "sessionData": payload},
            prefixo="waha_session",
        )
    if tipo_evento == "state.change":
        return criar_notificacao(
            tipo=TipoNotificacao.INFO,
            titulo="Estado do WhatsApp Alterado",
            mensagem=f"Estado da sessão {sessao} foi alterado",
            origem=ORIGEM_WAHA,
            dados={"event": "waha.state.change", "session": sessao, "state": payload},
            prefixo="waha_state",
        )
    return None


def _erro(codigo: int, erro: str, mensagem: str) -> JSONResponse:
    return JSONResponse(status_code=codigo, content={"error": erro, "message": mensagem})


async def _processar_webhook(
    request: Request,
    webhook_hash: Optional[str],
    gerenciador: GerenciadorConexoes,
    estatisticas: EstatisticasWebhook,
):
    sessao_validada = None
    if webhook_hash:
        sessao_validada = settings.waha_sessoes.get(webhook_hash)
        if not sessao_validada:
            logger.warning(f"Webhook WAHA com hash inválido: {webhook_hash}")
            estatisticas.rejeitar("hash_invalido")
            return _erro(status.HTTP_401_UNAUTHORIZED, "Hash inválido", "Webhook hash não autorizado")

    try:
        evento = await request.json()
    except ValueError:
        evento = None

    if not isinstance(evento, dict) or not evento.get("event") or not evento.get("session"):
        estatisticas.rejeitar("evento_invalido")
        return _erro(status.HTTP_400_BAD_REQUEST, "Evento inválido", "Campos event e session são obrigatórios")

    if sessao_validada and evento["session"] != sessao_validada:
        logger.warning(f"Sessão do evento ({evento['session']}) não corresponde à sessão do hash ({sessao_validada})")
        estatisticas.rejeitar("sessao_nao_autorizada")
        return _erro(
            status.HTTP_403_FORBIDDEN,
            "Sessão não autorizada",
            f"Este webhook só aceita eventos da sessão: {sessao_validada}"
        )

    estatisticas.registrar(evento["event"])
    notificacao = notificacao_do_evento(evento)
    if notificacao is None:
        logger.info(f"Evento WAHA não tratado: {evento['event']}")
    else:
        await gerenciador.broadcast_por_papel(notificacao, TipoUsuario.SUPER_ADMIN.value)
        logger.info(f"Evento WAHA {evento['event']} da sessão {evento['session']} repassado aos super admins")

    return {
        "success": True,
        "message": "Evento processado com sucesso",
        "receivedAt": agora().isoformat(),
        "webhookHash": webhook_hash or "sem-hash",
        "sessionName": evento["session"],
        "validatedSessionName": sessao_validada,
    }


@router.get('/webhook/stats')
async def estatisticas_webhook(
    contexto: ContextoAutenticacao = Depends(require_super_admin),
    estatisticas: EstatisticasWebhook = Depends(get_estatisticas_webhook),
):
    return {
        "message": "Webhook funcionando corretamente",
        "endpoint": f"{settings.API_STR}/waha/webhook",
        "timestamp": agora().isoformat(),
        "status": "active",
        "configuredSessions": sorted(set(settings.waha_sessoes.values())),
        **estatisticas.resumo(),
    }


@router.post('/webhook')
async def receber_webhook(
    request: Request,
    gerenciador: GerenciadorConexoes = Depends(get_gerenciador),
    estatisticas: EstatisticasWebhook = Depends(get_estatisticas_webhook),
):
    return await _processar_webhook(request, None, gerenciador, estatisticas)


@router.post('/webhook/{webhook_hash}')
async def receber_webhook_com_hash(
    webhook_hash: str,
    request: Request,
    gerenciador: GerenciadorConexoes = Depends(get_gerenciador),
    estatisticas: EstatisticasWebhook = Depends(get_estatisticas_webhook),
):
    return await _processar_webhook(request, webhook_hash, gerenciador, estatisticas)
