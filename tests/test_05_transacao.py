from unittest.mock import AsyncMock

from fastapi import status
from sqlalchemy import func
from sqlalchemy.future import select

from core.database import Session
from models.enums import TipoTransacao
from models.transacao_model import TransacaoModel
from tests.config import API, BaseTesteAPI, cabecalho, carteira_de, categoria_global, criar_usuario


async def contar_transacoes() -> int:
    async with Session() as session:
        return (await session.execute(select(func.count(TransacaoModel.id)))).scalar()


class TestTransacoes(BaseTesteAPI):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.usuario = await criar_usuario()
        self.headers = cabecalho(self.usuario)
        self.alimentacao = await categoria_global("Alimentação")
        self.salario = await categoria_global("Salário", TipoTransacao.RECEITA)

    async def _criar(self, headers=None, **campos):
        dados = {
            "tipo": "despesa",
            "valor": "50.00",
            "categoria_id": self.alimentacao.id,
            "data_transacao": "2025-01-10",
            "descricao": "Mercado",
        }
        dados.update(campos)
        return await self.client.post(f"{API}/transactions", json=dados, headers=headers or self.headers)

    async def test_despesa_reduz_saldo_da_carteira(self):
        inicial = await self.client.get(f"{API}/wallet/current", headers=self.headers)
        self.assertEqual(inicial.json()["saldo_atual"], "0.00")

        response = await self._criar()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        dados = response.json()
        self.assertEqual(dados["tipo"], "Despesa")
        self.assertEqual(dados["valor"], "50.00")
        self.assertEqual(dados["categoria_nome"], "Alimentação")
        self.assertEqual(dados["forma_pagamento_nome"], "PIX")

        carteira = await self.client.get(f"{API}/wallet/current", headers=self.headers)
        self.assertEqual(carteira.json()["saldo_atual"], "-50.00")

    async def test_tipo_incompativel_com_categoria(self):
        response = await self._criar(categoria_id=self.salario.id)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("incompatível", response.json()["detail"])
        self.assertEqual(await contar_transacoes(), 0)

    async def test_tipo_invalido(self):
        response = await self._criar(tipo="transferencia")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(await contar_transacoes(), 0)

    async def test_data_invalida(self):
        response = await self._criar(data_transacao="10-01-2025")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["detail"], "Dados inválidos")

    async def test_carteira_omitida_ou_zero_usa_a_do_usuario(self):
        carteira = await carteira_de(self.usuario)

        sem_carteira = await self._criar()
        carteira_zero = await self._criar(carteira_id=0)

        self.assertEqual(sem_carteira.json()["carteira_id"], carteira.id)
        self.assertEqual(carteira_zero.json()["carteira_id"], carteira.id)

    async def test_carteira_de_outro_usuario(self):
        outro = await criar_usuario(email="b@x.com")
        carteira_outro = await carteira_de(outro)

        response = await self._criar(carteira_id=carteira_outro.id)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    async def test_transacao_de_outro_usuario(self):
        criada = (await self._criar()).json()
        outro = await criar_usuario(email="b@x.com")

        response = await self.client.get(f"{API}/transactions/{criada['id']}", headers=cabecalho(outro))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        exclusao = await self.client.delete(f"{API}/transactions/{criada['id']}", headers=cabecalho(outro))
        self.assertEqual(exclusao.status_code, status.HTTP_403_FORBIDDEN)

    async def test_atualizacao_parcial(self):
        criada = (await self._criar()).json()
        response = await self.client.patch(
            f"{API}/transactions/{criada['id']}", json={"valor": "75,25"}, headers=self.headers
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["valor"], "75.25")
        self.assertEqual(response.json()["descricao"], "Mercado")

    async def test_atualizacao_com_tipo_incompativel(self):
        criada = (await self._criar()).json()
        response = await self.client.put(
            f"{API}/transactions/{criada['id']}", json={"tipo": "receita"}, headers=self.headers
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    async def test_listagem_e_recentes(self):
        await self._criar(data_transacao="2025-01-01", descricao="Antiga")
        await self._criar(data_transacao="2025-01-20", descricao="Nova")

        todas = await self.client.get(f"{API}/transactions", headers=self.headers)
        self.assertEqual([t["descricao"] for t in todas.json()], ["Nova", "Antiga"])

        recentes = await self.client.get(f"{API}/transactions/recent", params={"limit": 1}, headers=self.headers)
        self.assertEqual(len(recentes.json()), 1)
        self.assertEqual(recentes.json()[0]["descricao"], "Nova")

    async def test_exclusao(self):
        criada = (await self._criar()).json()
        response = await self.client.delete(f"{API}/transactions/{criada['id']}", headers=self.headers)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json(), {"message": "Transação excluída com sucesso"})
        self.assertEqual(await contar_transacoes(), 0)

    async def test_notificacao_para_o_usuario_conectado(self):
        websocket = AsyncMock()
        await self.gerenciador.conectar(websocket, self.usuario.id, "normal", self.usuario.nome)
        websocket.send_json.reset_mock()

        await self._criar()

        websocket.send_json.assert_awaited_once()
        mensagem = websocket.send_json.call_args.args[0]
        self.assertEqual(mensagem["type"], "notification")
        self.assertEqual(mensagem["data"]["data"]["event"], "transaction.created")
        self.assertEqual(mensagem["data"]["type"], "success")

    async def test_dashboard(self):
        await self._criar(data_transacao="2025-01-10")
        await self._criar(tipo="receita", categoria_id=self.salario.id, valor="200.00")

        response = await self.client.get(f"{API}/dashboard/summary", headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        dados = response.json()
        self.assertEqual(float(dados["totalIncome"]), 200.0)
        self.assertEqual(float(dados["totalExpenses"]), 50.0)
        self.assertEqual(dados["monthlyData"][0]["month"], "Jan")
