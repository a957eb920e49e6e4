import unittest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi import status

from core.configs import settings
from core.notificacoes import GerenciadorConexoes, criar_notificacao
from main import executar_verificacao_conexoes
from models.enums import TipoNotificacao, TipoUsuario
from tests.config import API, BaseTesteAPI, cabecalho, criar_usuario


def notificacao_teste():
    return criar_notificacao(
        tipo=TipoNotificacao.INFO,
        titulo="Teste",
        mensagem="Mensagem",
        origem={"id": "1", "name": "Admin", "role": "super_admin"},
    )


class TestGerenciadorConexoes(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.gerenciador = GerenciadorConexoes(intervalo_ping=15, tempo_limite=30)

    async def test_conectar_envia_confirmacao(self):
        websocket = AsyncMock()
        await self.gerenciador.conectar(websocket, 1, "normal", "Ana")

        mensagem = websocket.send_json.call_args.args[0]
        self.assertEqual(mensagem["type"], "connection_established")
        self.assertEqual(mensagem["data"]["userId"], "1")
        self.assertTrue(self.gerenciador.usuario_conectado(1))

    async def test_nova_conexao_substitui_a_anterior(self):
        antigo, novo = AsyncMock(), AsyncMock()
        await self.gerenciador.conectar(antigo, 1, "normal", "Ana")
        await self.gerenciador.conectar(novo, 1, "normal", "Ana")

        antigo.close.assert_awaited_once_with(code=1000)
        self.assertEqual(self.gerenciador.estatisticas()["totalConnections"], 1)

        # desconexão tardia do socket antigo não derruba o novo
        self.gerenciador.desconectar(1, antigo)
        self.assertTrue(self.gerenciador.usuario_conectado(1))

    async def test_broadcast_para_destinos(self):
        ana, bruno = AsyncMock(), AsyncMock()
        await self.gerenciador.conectar(ana, 1, "normal", "Ana")
        await self.gerenciador.conectar(bruno, 2, "normal", "Bruno")
        ana.send_json.reset_mock()
        bruno.send_json.reset_mock()

        entregue = await self.gerenciador.broadcast(notificacao_teste(), [1, "1", 3])

        self.assertTrue(entregue)
        ana.send_json.assert_awaited_once()
        bruno.send_json.assert_not_awaited()

    async def test_broadcast_sem_destinos_conectados(self):
        self.assertFalse(await self.gerenciador.broadcast(notificacao_teste(), [99]))

    async def test_broadcast_por_papel(self):
        admin, comum = AsyncMock(), AsyncMock()
        await self.gerenciador.conectar(admin, 1, TipoUsuario.SUPER_ADMIN.value, "Admin")
        await self.gerenciador.conectar(comum, 2, TipoUsuario.NORMAL.value, "Ana")
        admin.send_json.reset_mock()
        comum.send_json.reset_mock()

        await self.gerenciador.broadcast_por_papel(notificacao_teste(), TipoUsuario.SUPER_ADMIN.value)

        admin.send_json.assert_awaited_once()
        comum.send_json.assert_not_awaited()

    async def test_falha_de_envio_nao_interrompe_os_demais(self):
        quebrado, ok = AsyncMock(), AsyncMock()
        await self.gerenciador.conectar(quebrado, 1, "normal", "Ana")
        await self.gerenciador.conectar(ok, 2, "normal", "Bruno")
        quebrado.send_json.side_effect = RuntimeError("socket fechado")
        ok.send_json.reset_mock()

        self.assertTrue(await self.gerenciador.broadcast(notificacao_teste()))
        ok.send_json.assert_awaited_once()

    async def test_ping_responde_pong(self):
        websocket = AsyncMock()
        await self.gerenciador.conectar(websocket, 1, "normal", "Ana")
        await self.gerenciador.tratar_mensagem(1, {"type": "ping"})

        self.assertEqual(websocket.send_json.call_args.args[0]["type"], "pong")

    async def test_verificar_conexoes_derruba_inativas(self):
        inativo, ativo = AsyncMock(), AsyncMock()
        conexao = await self.gerenciador.conectar(inativo, 1, "normal", "Ana")
        await self.gerenciador.conectar(ativo, 2, "normal", "Bruno")
        conexao.ultimo_ping -= timedelta(seconds=60)

        await self.gerenciador.verificar_conexoes()

        inativo.close.assert_awaited_once_with(code=1001)
        self.assertFalse(self.gerenciador.usuario_conectado(1))
        self.assertEqual(ativo.send_json.call_args.args[0]["type"], "ping")

    async def test_desconectar_usuario(self):
        websocket = AsyncMock()
        await self.gerenciador.conectar(websocket, 1, "normal", "Ana")

        self.assertTrue(await self.gerenciador.desconectar_usuario(1))
        self.assertFalse(await self.gerenciador.desconectar_usuario(1))
        self.assertEqual(self.gerenciador.usuarios_conectados(), [])


class TestAgendamentoVerificacao(unittest.TestCase):

    def test_falha_na_verificacao_e_registrada(self):
        futuro = MagicMock()
        futuro.result.side_effect = RuntimeError("loop parado")

        with patch("main.asyncio.run_coroutine_threadsafe", return_value=futuro), patch("main.logger") as log:
            executar_verificacao_conexoes(MagicMock(), MagicMock())

        futuro.result.assert_called_once_with(timeout=settings.WS_PING_INTERVAL)
        log.exception.assert_called_once()


class TestEndpointsNotificacao(BaseTesteAPI):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.admin = await criar_usuario(email="admin@x.com", nome="Admin", tipo_usuario=TipoUsuario.SUPER_ADMIN)
        self.headers = cabecalho(self.admin)

    async def test_envio_para_usuario(self):
        usuario = await criar_usuario(email="b@x.com")
        websocket = AsyncMock()
        await self.gerenciador.conectar(websocket, usuario.id, "normal", usuario.nome)

        response = await self.client.post(f"{API}/notifications/send", json={
            "type": "warning", "title": "Aviso", "message": "Manutenção às 22h", "targetUser": usuario.id,
        }, headers=self.headers)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["notification"]["targetCount"], 1)
        enviada = websocket.send_json.call_args.args[0]["data"]
        self.assertEqual(enviada["title"], "Aviso")
        self.assertEqual(enviada["from"]["id"], str(self.admin.id))

    async def test_tipo_invalido(self):
        response = await self.client.post(f"{API}/notifications/send", json={
            "type": "urgente", "title": "Aviso", "message": "x",
        }, headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    async def test_broadcast_para_super_admins(self):
        websocket = AsyncMock()
        await self.gerenciador.conectar(websocket, self.admin.id, TipoUsuario.SUPER_ADMIN.value, "Admin")

        response = await self.client.post(f"{API}/notifications/broadcast", json={
            "type": "info", "title": "Olá", "message": "Para todos",
        }, headers=self.headers)

        self.assertEqual(response.json()["message"], "Broadcast enviado para 1 SuperAdmins")

    async def test_usuario_comum_nao_envia(self):
        usuario = await criar_usuario(email="b@x.com")
        response = await self.client.post(f"{API}/notifications/test", headers=cabecalho(usuario))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    async def test_estatisticas(self):
        await self.gerenciador.conectar(AsyncMock(), self.admin.id, TipoUsuario.SUPER_ADMIN.value, "Admin")
        response = await self.client.get(f"{API}/notifications/stats", headers=self.headers)
        self.assertEqual(response.json()["data"]["totalConnections"], 1)
        self.assertEqual(response.json()["data"]["connectionsByRole"], {"super_admin": 1})
