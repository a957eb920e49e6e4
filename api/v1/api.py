from fastapi import APIRouter
from api.v1.endpoints import (
    admin, api_token, assinatura, carteira, categoria, dashboard, forma_pagamento,
    lembrete, notificacao, relatorio, tema, transacao, usuario, waha,
)
from core.utils import agora

api_router = APIRouter()
api_router.include_router(usuario.router_auth, prefix='/auth', tags=["auth"])
api_router.include_router(usuario.router, prefix='/users', tags=["usuarios"])
api_router.include_router(carteira.router, prefix='/wallet', tags=["carteira"])
api_router.include_router(categoria.router, prefix='/categories', tags=["categorias"])
api_router.include_router(forma_pagamento.router, prefix='/payment-methods', tags=["formas_pagamento"])
api_router.include_router(transacao.router, prefix='/transactions', tags=["transacoes"])
api_router.include_router(dashboard.router, prefix='/dashboard', tags=["dashboard"])
api_router.include_router(lembrete.router, prefix='/reminders', tags=["lembretes"])
api_router.include_router(api_token.router, prefix='/tokens', tags=["tokens"])
api_router.include_router(assinatura.router, prefix='/subscription', tags=["assinatura"])
api_router.include_router(relatorio.router_relatorios, prefix='/reports', tags=["relatorios"])
api_router.include_router(relatorio.router_graficos, prefix='/charts', tags=["graficos"])
api_router.include_router(notificacao.router, prefix='/notifications', tags=["notificacoes"])
api_router.include_router(waha.router, prefix='/waha', tags=["waha"])
api_router.include_router(admin.router, prefix='/admin', tags=["admin"])
api_router.include_router(tema.router, prefix='/themes', tags=["temas"])


@api_router.get('/health', tags=["health"])
async def health():
    return {"status": "ok", "timestamp": agora().isoformat()}
