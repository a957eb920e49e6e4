from fastapi import status

from tests.config import API, BaseTesteAPI, cabecalho, categoria_global, criar_usuario


class TestCategorias(BaseTesteAPI):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.usuario = await criar_usuario()
        self.headers = cabecalho(self.usuario)

    async def _criar(self, nome="Casa", tipo="Despesa", headers=None):
        return await self.client.post(
            f"{API}/categories", json={"nome": nome, "tipo": tipo}, headers=headers or self.headers
        )

    async def test_listagem_inclui_globais_primeiro(self):
        await self._criar("Academia")
        response = await self.client.get(f"{API}/categories", headers=self.headers)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        categorias = response.json()
        self.assertTrue(categorias[0]["global"])
        self.assertFalse(categorias[-1]["global"])
        self.assertEqual(categorias[-1]["nome"], "Academia")

    async def test_filtro_por_tipo(self):
        response = await self.client.get(f"{API}/categories", params={"tipo": "receita"}, headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(all(c["tipo"] == "Receita" for c in response.json()))

    async def test_categoria_criada_sempre_pessoal(self):
        response = await self.client.post(
            f"{API}/categories", json={"nome": "Casa", "tipo": "despesa", "global": True}, headers=self.headers
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.json()["global"])
        self.assertEqual(response.json()["usuario_id"], self.usuario.id)

    async def test_nome_duplicado_mesmo_tipo(self):
        primeira = await self._criar("Casa")
        self.assertEqual(primeira.status_code, status.HTTP_201_CREATED)

        segunda = await self._criar("casa")
        self.assertEqual(segunda.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(segunda.json()["detail"], "Já existe uma categoria despesa com este nome")

    async def test_nome_igual_com_tipo_diferente(self):
        await self._criar("Casa", "Despesa")
        response = await self._criar("Casa", "Receita")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    async def test_categoria_global_nao_pode_ser_modificada(self):
        alimentacao = await categoria_global("Alimentação")
        response = await self.client.put(
            f"{API}/categories/{alimentacao.id}", json={"nome": "Comida"}, headers=self.headers
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.json()["detail"], "Categorias globais não podem ser modificadas")

        exclusao = await self.client.delete(f"{API}/categories/{alimentacao.id}", headers=self.headers)
        self.assertEqual(exclusao.status_code, status.HTTP_403_FORBIDDEN)

    async def test_categoria_de_outro_usuario(self):
        criada = (await self._criar("Casa")).json()
        outro = await criar_usuario(email="b@x.com")

        response = await self.client.get(f"{API}/categories/{criada['id']}", headers=cabecalho(outro))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    async def test_excluir_categoria_em_uso(self):
        criada = (await self._criar("Casa")).json()
        transacao = await self.client.post(f"{API}/transactions", json={
            "tipo": "Despesa", "valor": "10.00", "categoria_id": criada["id"],
            "data_transacao": "2025-01-10", "descricao": "Aluguel",
        }, headers=self.headers)
        self.assertEqual(transacao.status_code, status.HTTP_201_CREATED)

        response = await self.client.delete(f"{API}/categories/{criada['id']}", headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            response.json()["detail"],
            "Não é possível excluir a categoria porque ela está sendo usada em transações"
        )
        ainda_existe = await self.client.get(f"{API}/categories/{criada['id']}", headers=self.headers)
        self.assertEqual(ainda_existe.status_code, status.HTTP_200_OK)

    async def test_excluir_categoria_sem_uso(self):
        criada = (await self._criar("Casa")).json()
        response = await self.client.delete(f"{API}/categories/{criada['id']}", headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        removida = await self.client.get(f"{API}/categories/{criada['id']}", headers=self.headers)
        self.assertEqual(removida.status_code, status.HTTP_404_NOT_FOUND)
