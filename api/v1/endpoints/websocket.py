import logging
from typing import Optional

from fastapi import WebSocket, WebSocketDisconnect, Depends, Query, status
from sqlalchemy.future import select

from core.auth import usuario_id_do_token
from core.database import Session
from core.notificacoes import GerenciadorConexoes, get_gerenciador
from models.enums import TipoUsuario
from models.usuario_model import UsuarioModel

logger = logging.getLogger(__name__)


async def _usuario_do_token(token: Optional[str]) -> Optional[UsuarioModel]:
    usuario_id = usuario_id_do_token(token) if token else None
    if usuario_id is None:
        return None
    async with Session() as session:
        result = await session.execute(select(UsuarioModel).where(UsuarioModel.id == usuario_id))
        usuario = result.scalars().one_or_none()
    if usuario is None or not usuario.ativo:
        return None
    return usuario


async def websocket_notificacoes(
    websocket: WebSocket,
    token: Optional[str] = Query(default=None),
    gerenciador: GerenciadorConexoes = Depends(get_gerenciador),
):
    usuario = await _usuario_do_token(token)
    if usuario is None:
        logger.warning("Conexão WebSocket recusada: token ausente ou inválido")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    await gerenciador.conectar(websocket, usuario.id, TipoUsuario(usuario.tipo_usuario).value, usuario.nome)
    try:
        while True:
            mensagem = await websocket.receive_json()
            if isinstance(mensagem, dict):
                await gerenciador.tratar_mensagem(usuario.id, mensagem)
    except WebSocketDisconnect:
        pass
    except ValueError as e:
        logger.warning(f"Mensagem WebSocket inválida do usuário {usuario.id}: {e}")
    finally:
        gerenciador.desconectar(usuario.id, websocket)
