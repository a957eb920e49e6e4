from datetime import timedelta

from fastapi import status
from sqlalchemy.future import select

from core.database import Session
from core.utils import agora
from models.api_token_model import ApiTokenModel
from models.usuario_model import UsuarioModel
from tests.config import API, BaseTesteAPI, cabecalho, carteira_de, criar_usuario


class TestRegistro(BaseTesteAPI):

    async def test_registro_cria_carteira_e_master_token(self):
        response = await self.client.post(f"{API}/auth/register", json={
            "nome": "Ana", "email": "A@X.com", "senha": "secret1", "telefone": "5511999998888",
        })

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        dados = response.json()
        self.assertEqual(dados["email"], "a@x.com")
        self.assertNotIn("senha", dados)

        async with Session() as session:
            tokens = (await session.execute(
                select(ApiTokenModel).where(ApiTokenModel.usuario_id == dados["id"])
            )).scalars().all()
        self.assertEqual(len(tokens), 1)
        self.assertEqual(tokens[0].nome, "MasterToken")
        self.assertTrue(tokens[0].master)

        carteira = await self.client.get(f"{API}/wallet/current")
        self.assertEqual(carteira.status_code, status.HTTP_200_OK)
        self.assertEqual(carteira.json()["nome"], "Principal")
        self.assertEqual(carteira.json()["saldo_atual"], "0.00")
        self.assertEqual(carteira.headers["cache-control"], "no-cache, no-store, must-revalidate")

    async def test_registro_email_duplicado(self):
        await criar_usuario(email="a@x.com")
        response = await self.client.post(f"{API}/auth/register", json={
            "nome": "Ana", "email": "a@x.com", "senha": "secret1",
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["detail"], "Email já está em uso.")

    async def test_registro_dados_invalidos(self):
        response = await self.client.post(f"{API}/auth/register", json={
            "nome": "A", "email": "nao-e-email", "senha": "123", "telefone": "1199",
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["detail"], "Dados inválidos")
        self.assertTrue(response.json()["errors"])


class TestLogin(BaseTesteAPI):

    async def test_login_sucesso(self):
        await criar_usuario(email="a@x.com", senha="secret1")
        response = await self.client.post(f"{API}/auth/login", json={"email": "a@x.com", "senha": "secret1"})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access_token", response.json())
        self.assertEqual(response.json()["user"]["email"], "a@x.com")

        # cookie de sessão autentica as próximas requisições
        me = await self.client.get(f"{API}/auth/me")
        self.assertEqual(me.status_code, status.HTTP_200_OK)
        self.assertFalse(me.json()["isImpersonating"])

    async def test_login_senha_incorreta(self):
        await criar_usuario(email="a@x.com", senha="secret1")
        response = await self.client.post(f"{API}/auth/login", json={"email": "a@x.com", "senha": "errada1"})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()["detail"], "Usuário ou senha incorretos ou inexistentes!")

    async def test_login_usuario_inativo(self):
        await criar_usuario(email="a@x.com", senha="secret1", ativo=False)
        response = await self.client.post(f"{API}/auth/login", json={"email": "a@x.com", "senha": "secret1"})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()["detail"], "Usuário inativo")

    async def test_login_assinatura_expirada(self):
        usuario = await criar_usuario(
            email="a@x.com", senha="secret1", data_expiracao_assinatura=agora() - timedelta(days=1)
        )
        response = await self.client.post(f"{API}/auth/login", json={"email": "a@x.com", "senha": "secret1"})

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertTrue(response.json()["subscriptionExpired"])
        async with Session() as session:
            atualizado = await session.get(UsuarioModel, usuario.id)
        self.assertFalse(atualizado.ativo)

    async def test_logout_limpa_sessao(self):
        await criar_usuario(email="a@x.com", senha="secret1")
        await self.client.post(f"{API}/auth/login", json={"email": "a@x.com", "senha": "secret1"})
        await self.client.post(f"{API}/auth/logout")

        response = await self.client.get(f"{API}/auth/verify")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class TestAutenticacao(BaseTesteAPI):

    async def test_sem_credenciais(self):
        response = await self.client.get(f"{API}/users/profile")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    async def test_bearer_token(self):
        usuario = await criar_usuario()
        response = await self.client.get(f"{API}/users/profile", headers=cabecalho(usuario))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["id"], usuario.id)

    async def test_bearer_token_invalido(self):
        response = await self.client.get(f"{API}/users/profile", headers={"Authorization": "Bearer invalido"})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    async def test_api_key(self):
        usuario = await criar_usuario()
        async with Session() as session:
            token = (await session.execute(
                select(ApiTokenModel).where(ApiTokenModel.usuario_id == usuario.id)
            )).scalars().first()

        response = await self.client.get(f"{API}/users/profile", headers={"apikey": token.token})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["id"], usuario.id)

    async def test_api_key_invalida(self):
        response = await self.client.get(f"{API}/users/profile", headers={"apikey": "nao-existe"})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json()["detail"], "Token de API inválido")


class TestPerfil(BaseTesteAPI):

    async def test_atualizar_perfil(self):
        usuario = await criar_usuario()
        response = await self.client.put(
            f"{API}/users/profile", json={"nome": "Novo Nome"}, headers=cabecalho(usuario)
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["nome"], "Novo Nome")

    async def test_atualizar_email_em_uso(self):
        await criar_usuario(email="b@x.com")
        usuario = await criar_usuario(email="a@x.com")
        response = await self.client.put(
            f"{API}/users/profile", json={"email": "b@x.com"}, headers=cabecalho(usuario)
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    async def test_alterar_senha(self):
        usuario = await criar_usuario(senha="secret1")
        errada = await self.client.put(
            f"{API}/users/password", json={"senhaAtual": "errada1", "novaSenha": "novasenha"}, headers=cabecalho(usuario)
        )
        self.assertEqual(errada.status_code, status.HTTP_401_UNAUTHORIZED)

        certa = await self.client.put(
            f"{API}/users/password", json={"senha_atual": "secret1", "nova_senha": "novasenha"}, headers=cabecalho(usuario)
        )
        self.assertEqual(certa.status_code, status.HTTP_200_OK)

        login = await self.client.post(f"{API}/auth/login", json={"email": usuario.email, "senha": "novasenha"})
        self.assertEqual(login.status_code, status.HTTP_200_OK)

    async def test_carteira_criada_no_registro(self):
        usuario = await criar_usuario()
        carteira = await carteira_de(usuario)
        self.assertEqual(carteira.nome, "Principal")
