"""
Distribuição de notificações em tempo real para clientes WebSocket conectados.

O GerenciadorConexoes é criado no lifespan da aplicação, guardado em
``app.state`` e entregue aos handlers pela dependência ``get_gerenciador``.
As entregas são best-effort: nada é guardado para usuários desconectados.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from fastapi.encoders import jsonable_encoder
from starlette.requests import HTTPConnection
from starlette.websockets import WebSocket

from core.utils import agora
from models.enums import TipoNotificacao

logger = logging.getLogger(__name__)


@dataclass
class ConexaoAtiva:
    websocket: WebSocket
    usuario_id: str
    tipo_usuario: str
    nome: str
    conectado_em: datetime = field(default_factory=agora)
    ultimo_ping: datetime = field(default_factory=agora)


def criar_notificacao(
    tipo: TipoNotificacao,
    titulo: str,
    mensagem: str,
    origem: Dict[str, Any],
    dados: Optional[Dict[str, Any]] = None,
    prefixo: str = "notif",
) -> Dict[str, Any]:
    notificacao = {
        "id": f"{prefixo}_{int(agora().timestamp() * 1000)}_{uuid.uuid4().hex[:9]}",
        "type": TipoNotificacao(tipo).value,
        "title": titulo,
        "message": mensagem,
        "timestamp": agora().isoformat(),
        "from": origem,
    }
    if dados is not None:
        notificacao["data"] = dados
    return notificacao


class GerenciadorConexoes:

    def __init__(self, intervalo_ping: int = 15, tempo_limite: int = 30):
        self.intervalo_ping = intervalo_ping
        self.tempo_limite = tempo_limite
        self._conexoes: Dict[str, ConexaoAtiva] = {}

    async def conectar(self, websocket: WebSocket, usuario_id, tipo_usuario: str, nome: str) -> ConexaoAtiva:
        chave = str(usuario_id)
        anterior = self._conexoes.get(chave)
        conexao = ConexaoAtiva(websocket=websocket, usuario_id=chave, tipo_usuario=tipo_usuario, nome=nome)
        self._conexoes[chave] = conexao
        if anterior is not None and anterior.websocket is not websocket:
            await self._fechar(anterior, codigo=1000)

        logger.info(f"WebSocket conectado: usuário {chave} ({nome}). Conexões ativas: {len(self._conexoes)}")
        await self._enviar(conexao, {
            "type": "connection_established",
            "data": {
                "userId": chave,
                "userName": nome,
                "userRole": tipo_usuario,
                "connectedAt": conexao.conectado_em.isoformat(),
            },
        })
        return conexao

    def desconectar(self, usuario_id, websocket: Optional[WebSocket] = None) -> None:
        chave = str(usuario_id)
        conexao = self._conexoes.get(chave)
        if conexao is None:
            return
        if websocket is not None and conexao.websocket is not websocket:
            return
        del self._conexoes[chave]
        logger.info(f"WebSocket desconectado: usuário {chave}. Conexões ativas: {len(self._conexoes)}")

    def registrar_atividade(self, usuario_id) -> None:
        conexao = self._conexoes.get(str(usuario_id))
        if conexao is not None:
            conexao.ultimo_ping = agora()

    async def tratar_mensagem(self, usuario_id, mensagem: Dict[str, Any]) -> None:
        self.registrar_atividade(usuario_id)
        tipo = mensagem.get("type")
        conexao = self._conexoes.get(str(usuario_id))

        if tipo == "ping" and conexao is not None:
            await self._enviar(conexao, {"type": "pong", "timestamp": agora().isoformat()})
        elif tipo == "notification_read":
            logger.info(f"Notificação {mensagem.get('notificationId')} lida pelo usuário {usuario_id}")

    async def broadcast(self, notificacao: Dict[str, Any], ids_destino: Optional[Iterable] = None) -> bool:
        mensagem = {"type": "notification", "data": notificacao}

        if ids_destino is not None:
            destinos = [self._conexoes[str(i)] for i in dict.fromkeys(str(i) for i in ids_destino) if str(i) in self._conexoes]
        else:
            destinos = list(self._conexoes.values())

        enviados = 0
        for conexao in destinos:
            if await self._enviar(conexao, mensagem):
                enviados += 1

        logger.info(f"Notificação {notificacao.get('id')} enviada para {enviados} de {len(destinos)} conexões")
        return enviados > 0

    async def broadcast_por_papel(self, notificacao: Dict[str, Any], tipo_usuario: str) -> bool:
        ids = [c.usuario_id for c in self._conexoes.values() if c.tipo_usuario == tipo_usuario]
        if not ids:
            return False
        return await self.broadcast(notificacao, ids)

    async def verificar_conexoes(self) -> None:
        """Derruba conexões sem atividade dentro do tempo limite e envia ping às demais."""
        momento = agora()
        for conexao in list(self._conexoes.values()):
            inativo = (momento - conexao.ultimo_ping).total_seconds()
            if inativo > self.tempo_limite:
                logger.warning(f"Conexão do usuário {conexao.usuario_id} expirada após {int(inativo)}s sem resposta")
                self.desconectar(conexao.usuario_id, conexao.websocket)
                await self._fechar(conexao, codigo=1001)
            else:
                await self._enviar(conexao, {"type": "ping", "timestamp": momento.isoformat()})

    async def desconectar_usuario(self, usuario_id) -> bool:
        conexao = self._conexoes.get(str(usuario_id))
        if conexao is None:
            return False
        self.desconectar(usuario_id)
        await self._fechar(conexao, codigo=1000)
        return True

    def usuario_conectado(self, usuario_id) -> bool:
        return str(usuario_id) in self._conexoes

    def estatisticas(self) -> Dict[str, Any]:
        por_papel: Dict[str, int] = {}
        for conexao in self._conexoes.values():
            por_papel[conexao.tipo_usuario] = por_papel.get(conexao.tipo_usuario, 0) + 1
        return {
            "totalConnections": len(self._conexoes),
            "connectionsByRole": por_papel,
            "connectedUsers": self.usuarios_conectados(),
        }

    def usuarios_conectados(self) -> List[Dict[str, Any]]:
        return [
            {
                "userId": c.usuario_id,
                "userName": c.nome,
                "userRole": c.tipo_usuario,
                "connectedAt": c.conectado_em.isoformat(),
                "lastPing": c.ultimo_ping.isoformat(),
            }
            for c in self._conexoes.values()
        ]

    async def _enviar(self, conexao: ConexaoAtiva, mensagem: Dict[str, Any]) -> bool:
        try:
            await conexao.websocket.send_json(jsonable_encoder(mensagem))
            return True
        except Exception as e:
            logger.error(f"Erro ao enviar mensagem para o usuário {conexao.usuario_id}: {e}")
            return False

    async def _fechar(self, conexao: ConexaoAtiva, codigo: int) -> None:
        try:
            await conexao.websocket.close(code=codigo)
        except Exception as e:
            logger.warning(f"Erro ao fechar conexão do usuário {conexao.usuario_id}: {e}")


def get_gerenciador(conn: HTTPConnection) -> GerenciadorConexoes:
    return conn.app.state.gerenciador_conexoes
