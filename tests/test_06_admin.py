from fastapi import status
from sqlalchemy import func
from sqlalchemy.future import select

from core.database import Session
from core.personificacao import buscar_sessao_ativa, encerrar_sessao_personificacao, iniciar_sessao_personificacao
from models.enums import TipoTransacao, TipoUsuario
from models.sessao_admin_model import SessaoAdminModel
from models.usuario_model import UsuarioModel
from tests.config import API, BaseTesteAPI, cabecalho, categoria_global, criar_usuario


async def sessoes_abertas(target_user_id: int) -> int:
    async with Session() as session:
        result = await session.execute(
            select(func.count(SessaoAdminModel.id)).where(
                SessaoAdminModel.target_user_id == target_user_id,
                SessaoAdminModel.data_fim.is_(None),
            )
        )
        return result.scalar()


class TestPersonificacao(BaseTesteAPI):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.admin = await criar_usuario(email="admin@x.com", senha="admin123", nome="Admin", tipo_usuario=TipoUsuario.SUPER_ADMIN)
        self.usuario = await criar_usuario(email="b@x.com", nome="Bruno")

    async def _login_admin(self):
        response = await self.client.post(f"{API}/auth/login", json={"email": "admin@x.com", "senha": "admin123"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    async def test_personificar_e_encerrar(self):
        await self._login_admin()

        response = await self.client.post(f"{API}/admin/impersonate", json={"targetUserId": self.usuario.id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["user"]["id"], self.usuario.id)

        me = (await self.client.get(f"{API}/auth/me")).json()
        self.assertEqual(me["id"], self.usuario.id)
        self.assertTrue(me["isImpersonating"])
        self.assertEqual(me["originalAdmin"]["id"], self.admin.id)

        # rotas administrativas continuam liberadas durante a personificação
        estado = await self.client.get(f"{API}/admin/impersonation-status")
        self.assertEqual(estado.status_code, status.HTTP_200_OK)
        self.assertTrue(estado.json()["isImpersonating"])
        self.assertEqual(await sessoes_abertas(self.usuario.id), 1)

        parar = await self.client.post(f"{API}/admin/stop-impersonation")
        self.assertEqual(parar.status_code, status.HTTP_200_OK)
        self.assertEqual(await sessoes_abertas(self.usuario.id), 0)

        me = (await self.client.get(f"{API}/auth/me")).json()
        self.assertEqual(me["id"], self.admin.id)
        self.assertFalse(me["isImpersonating"])

    async def test_parar_sem_personificacao(self):
        await self._login_admin()
        response = await self.client.post(f"{API}/admin/stop-impersonation")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.json()["detail"], "Nenhuma sessão de personificação ativa")

    async def test_nao_personifica_super_admin(self):
        outro_admin = await criar_usuario(email="c@x.com", tipo_usuario=TipoUsuario.SUPER_ADMIN)
        await self._login_admin()
        response = await self.client.post(f"{API}/admin/impersonate", json={"targetUserId": outro_admin.id})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    async def test_nao_personifica_usuario_inativo(self):
        inativo = await criar_usuario(email="c@x.com", ativo=False)
        await self._login_admin()
        response = await self.client.post(f"{API}/admin/impersonate", json={"targetUserId": inativo.id})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    async def test_apenas_uma_sessao_aberta_por_alvo(self):
        segundo_admin = await criar_usuario(email="c@x.com", tipo_usuario=TipoUsuario.SUPER_ADMIN)

        async with Session() as session:
            await iniciar_sessao_personificacao(session, self.admin.id, self.usuario.id)
        async with Session() as session:
            await iniciar_sessao_personificacao(session, segundo_admin.id, self.usuario.id)

        self.assertEqual(await sessoes_abertas(self.usuario.id), 1)
        async with Session() as session:
            ativa = await buscar_sessao_ativa(session, self.usuario.id)
        self.assertEqual(ativa.super_admin_id, segundo_admin.id)

    async def test_segunda_personificacao_sem_encerrar_a_primeira(self):
        outro = await criar_usuario(email="d@x.com", nome="Daniel")
        await self._login_admin()
        await self.client.post(f"{API}/admin/impersonate", json={"targetUserId": self.usuario.id})

        response = await self.client.post(f"{API}/admin/impersonate", json={"targetUserId": outro.id})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(await sessoes_abertas(outro.id), 0)

        await self.client.post(f"{API}/admin/stop-impersonation")
        self.assertEqual(await sessoes_abertas(self.usuario.id), 0)

    async def test_encerrar_nao_fecha_sessao_de_outro_admin(self):
        segundo_admin = await criar_usuario(email="c@x.com", tipo_usuario=TipoUsuario.SUPER_ADMIN)
        async with Session() as session:
            await iniciar_sessao_personificacao(session, self.admin.id, self.usuario.id)
        async with Session() as session:
            await iniciar_sessao_personificacao(session, segundo_admin.id, self.usuario.id)

        async with Session() as session:
            self.assertFalse(await encerrar_sessao_personificacao(session, self.admin.id, self.usuario.id))
        self.assertEqual(await sessoes_abertas(self.usuario.id), 1)

        async with Session() as session:
            self.assertTrue(await encerrar_sessao_personificacao(session, segundo_admin.id, self.usuario.id))
        self.assertEqual(await sessoes_abertas(self.usuario.id), 0)

    async def test_log_de_auditoria(self):
        await self._login_admin()
        await self.client.post(f"{API}/admin/impersonate", json={"targetUserId": self.usuario.id})
        await self.client.post(f"{API}/admin/stop-impersonation")

        response = await self.client.get(f"{API}/admin/audit-log", params={"limit": 10})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        dados = response.json()
        self.assertEqual(dados["total"], 1)
        self.assertEqual(dados["limit"], 10)
        self.assertEqual(dados["offset"], 0)
        self.assertEqual(dados["logs"][0]["acao"], "Personificação encerrada")
        self.assertEqual(dados["logs"][0]["superAdminEmail"], "admin@x.com")
        self.assertEqual(dados["logs"][0]["targetUserNome"], "Bruno")


class TestAdministracaoUsuarios(BaseTesteAPI):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.admin = await criar_usuario(email="admin@x.com", nome="Admin", tipo_usuario=TipoUsuario.SUPER_ADMIN)
        self.headers = cabecalho(self.admin)
        self.usuario = await criar_usuario(email="b@x.com", nome="Bruno")

    async def test_usuario_comum_nao_acessa(self):
        response = await self.client.get(f"{API}/admin/stats", headers=cabecalho(self.usuario))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    async def test_estatisticas(self):
        response = await self.client.get(f"{API}/admin/stats", headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["totalUsers"], 2)
        self.assertEqual(response.json()["superAdmins"], 1)

    async def test_listagem_com_saldo_e_quantidade(self):
        alimentacao = await categoria_global("Alimentação", TipoTransacao.DESPESA)
        await self.client.post(f"{API}/transactions", json={
            "tipo": "Despesa", "valor": "30.00", "categoria_id": alimentacao.id,
            "data_transacao": "2025-01-10", "descricao": "Mercado",
        }, headers=cabecalho(self.usuario))

        response = await self.client.get(f"{API}/admin/users", headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        bruno = next(u for u in response.json() if u["id"] == self.usuario.id)
        self.assertEqual(bruno["transactionCount"], 1)
        self.assertEqual(float(bruno["walletBalance"]), -30.0)

    async def test_criar_usuario(self):
        response = await self.client.post(f"{API}/admin/users", json={
            "nome": "Carla", "email": "c@x.com", "senha": "secret1", "tipo_usuario": "admin",
        }, headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.json()["tipo_usuario"], "admin")

        duplicado = await self.client.post(f"{API}/admin/users", json={
            "nome": "Carla", "email": "c@x.com", "senha": "secret1",
        }, headers=self.headers)
        self.assertEqual(duplicado.status_code, status.HTTP_400_BAD_REQUEST)

    async def test_nao_exclui_a_si_mesmo(self):
        response = await self.client.delete(f"{API}/admin/users/{self.admin.id}", headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    async def test_exclusao_em_cascata(self):
        response = await self.client.delete(f"{API}/admin/users/{self.usuario.id}", headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        async with Session() as session:
            self.assertIsNone(await session.get(UsuarioModel, self.usuario.id))

    async def test_nao_desativa_super_admin(self):
        outro_admin = await criar_usuario(email="c@x.com", tipo_usuario=TipoUsuario.SUPER_ADMIN)
        response = await self.client.patch(
            f"{API}/admin/users/{outro_admin.id}/status", json={"ativo": False}, headers=self.headers
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    async def test_reativacao_limpa_cancelamento(self):
        cancelamento = await self.client.post(
            f"{API}/subscription/cancel", json={"motivo": "caro demais"}, headers=cabecalho(self.usuario)
        )
        self.assertEqual(cancelamento.status_code, status.HTTP_200_OK)

        desativar = await self.client.patch(
            f"{API}/admin/users/{self.usuario.id}/status", json={"ativo": False}, headers=self.headers
        )
        self.assertFalse(desativar.json()["ativo"])

        reativar = await self.client.patch(
            f"{API}/admin/users/{self.usuario.id}/status", json={"ativo": True}, headers=self.headers
        )
        dados = reativar.json()
        self.assertTrue(dados["ativo"])
        self.assertIsNone(dados["data_cancelamento"])
        self.assertIsNone(dados["motivo_cancelamento"])
        self.assertEqual(dados["status_assinatura"], "ativa")

    async def test_reset_de_dados(self):
        categoria = await self.client.post(
            f"{API}/categories", json={"nome": "Casa", "tipo": "Despesa"}, headers=cabecalho(self.usuario)
        )
        await self.client.post(f"{API}/transactions", json={
            "tipo": "Despesa", "valor": "30.00", "categoria_id": categoria.json()["id"],
            "data_transacao": "2025-01-10", "descricao": "Aluguel",
        }, headers=cabecalho(self.usuario))

        proprio = await self.client.post(f"{API}/admin/users/{self.admin.id}/reset", headers=self.headers)
        self.assertEqual(proprio.status_code, status.HTTP_400_BAD_REQUEST)

        response = await self.client.post(f"{API}/admin/users/{self.usuario.id}/reset", headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        transacoes = await self.client.get(f"{API}/transactions", headers=cabecalho(self.usuario))
        self.assertEqual(transacoes.json(), [])
        categorias = await self.client.get(f"{API}/categories", headers=cabecalho(self.usuario))
        self.assertTrue(all(c["global"] for c in categorias.json()))

    async def test_colorizar_categorias_globais(self):
        response = await self.client.post(f"{API}/admin/categories/colorize-global", headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["message"], "16 categorias globais foram colorizadas com sucesso!")

    async def test_reset_globais_preserva_categorias_em_uso(self):
        alimentacao = await categoria_global("Alimentação", TipoTransacao.DESPESA)
        await self.client.post(f"{API}/transactions", json={
            "tipo": "Despesa", "valor": "30.00", "categoria_id": alimentacao.id,
            "data_transacao": "2025-01-10", "descricao": "Mercado",
        }, headers=cabecalho(self.usuario))

        response = await self.client.post(f"{API}/admin/reset-globals", headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        dados = response.json()["data"]
        self.assertEqual(dados["categoriasRemovidas"], 15)
        self.assertEqual(dados["categoriasCriadas"], 15)
        self.assertIsNotNone(await categoria_global("Alimentação", TipoTransacao.DESPESA))
