import os
import unittest
from datetime import date
from unittest.mock import patch

from fastapi import status

from core import graficos
from core.seed import NOME_TEMA_PADRAO, TEMA_PADRAO_CLARO
from models.enums import TipoTransacao, TipoUsuario
from tests.config import API, BaseTesteAPI, cabecalho, categoria_global, criar_usuario


def gravar_pdf_falso(html, caminho, options=None):
    with open(caminho, "wb") as arquivo:
        arquivo.write(b"%PDF-1.4 falso")
    return True


class TestFuncoesGraficos(unittest.TestCase):

    def test_periodo_com_data(self):
        inicio, fim = graficos.periodo_semana("2025-01-10", hoje=date(2025, 2, 1))
        self.assertEqual((inicio, fim), (date(2025, 1, 4), date(2025, 1, 10)))

    def test_periodo_sem_data_e_a_semana_anterior(self):
        # quarta-feira, 15/01/2025
        inicio, fim = graficos.periodo_semana(None, hoje=date(2025, 1, 15))
        self.assertEqual((inicio, fim), (date(2025, 1, 6), date(2025, 1, 12)))

    def test_periodo_rejeita_data_futura_ou_invalida(self):
        with self.assertRaises(graficos.DataGraficoInvalida):
            graficos.periodo_semana("2025-03-01", hoje=date(2025, 2, 1))
        with self.assertRaises(graficos.DataGraficoInvalida):
            graficos.periodo_semana("01/03/2025", hoje=date(2025, 2, 1))

    def test_caminho_seguro(self):
        diretorio = graficos.diretorio_graficos()
        self.assertIsNone(graficos.caminho_seguro(diretorio, "../segredo.txt"))
        self.assertIsNone(graficos.caminho_seguro(diretorio, ".oculto"))
        self.assertEqual(
            graficos.caminho_seguro(diretorio, "grafico.svg"),
            os.path.join(os.path.realpath(diretorio), "grafico.svg"),
        )

    def test_formatacao_brasileira(self):
        self.assertEqual(graficos.formatar_valor_brasileiro("1234.5"), "R$ 1.234,50")
        self.assertEqual(graficos.formatar_data_brasileira("2025-01-10"), "10/01/2025")


class TestRelatorios(BaseTesteAPI):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.usuario = await criar_usuario()
        self.headers = cabecalho(self.usuario)
        alimentacao = await categoria_global("Alimentação")
        salario = await categoria_global("Salário", TipoTransacao.RECEITA)
        for tipo, categoria, valor in (("Despesa", alimentacao, "50.00"), ("Receita", salario, "300.00")):
            await self.client.post(f"{API}/transactions", json={
                "tipo": tipo, "valor": valor, "categoria_id": categoria.id,
                "data_transacao": "2025-01-08", "descricao": "lançamento",
            }, headers=self.headers)

    async def test_grafico_de_barras(self):
        response = await self.client.get(f"{API}/charts/bar", params={"date": "2025-01-10"}, headers=self.headers)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        dados = response.json()
        self.assertTrue(dados["success"])
        self.assertEqual(dados["period"], {"start": "2025-01-04", "end": "2025-01-10"})
        self.assertEqual(len(dados["data"]), 7)

        download = await self.client.get(dados["url"], headers=self.headers)
        self.assertEqual(download.status_code, status.HTTP_200_OK)

    async def test_grafico_de_pizza(self):
        response = await self.client.get(f"{API}/charts/pizza", params={"date": "2025-01-10"}, headers=self.headers)
        self.assertTrue(response.json()["success"])
        self.assertEqual(response.json()["data"][0]["category_name"], "Alimentação")

    async def test_periodo_sem_transacoes(self):
        response = await self.client.get(f"{API}/charts/bar2", params={"date": "2024-06-10"}, headers=self.headers)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.json()["success"])
        self.assertEqual(response.json()["data"], [])

    async def test_data_invalida(self):
        response = await self.client.get(f"{API}/charts/report", params={"date": "10/01/2025"}, headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["detail"], "Formato de data inválido. Use YYYY-MM-DD")

    async def test_download_fora_do_diretorio(self):
        response = await self.client.get(f"{API}/charts/download/..%2Fconfig.py", headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    @patch("core.graficos.pdfkit.from_string", side_effect=gravar_pdf_falso)
    async def test_relatorio_pdf(self, mock_pdf):
        response = await self.client.get(
            f"{API}/reports/pdf", params={"start_date": "2025-01-01", "end_date": "2025-01-31"}, headers=self.headers
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        dados = response.json()
        self.assertEqual(dados["transactionCount"], 2)
        self.assertEqual(float(dados["totals"]["balance"]), 250.0)
        html = mock_pdf.call_args.args[0]
        self.assertIn("R$ 300,00", html)

        download = await self.client.get(dados["downloadUrl"], headers=self.headers)
        self.assertEqual(download.status_code, status.HTTP_200_OK)
        self.assertEqual(download.headers["content-type"], "application/pdf")

    async def test_relatorio_pdf_periodo_invertido(self):
        response = await self.client.get(
            f"{API}/reports/pdf", params={"start_date": "2025-02-01", "end_date": "2025-01-01"}, headers=self.headers
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class TestTemas(BaseTesteAPI):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.admin = await criar_usuario(email="admin@x.com", tipo_usuario=TipoUsuario.SUPER_ADMIN)
        self.headers = cabecalho(self.admin)

    def _tema(self, nome="Oceano"):
        return {"name": nome, "lightConfig": dict(TEMA_PADRAO_CLARO), "darkConfig": dict(TEMA_PADRAO_CLARO)}

    async def test_tema_ativo_publico(self):
        response = await self.client.get(f"{API}/themes/active/current")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["data"]["name"], NOME_TEMA_PADRAO)

    async def test_criar_e_ativar(self):
        criado = await self.client.post(f"{API}/themes", json=self._tema(), headers=self.headers)
        self.assertEqual(criado.status_code, status.HTTP_201_CREATED)
        tema_id = criado.json()["data"]["id"]

        ativar = await self.client.post(f"{API}/themes/{tema_id}/activate-dark", headers=self.headers)
        self.assertEqual(ativar.status_code, status.HTTP_200_OK)
        self.assertTrue(ativar.json()["data"]["isActiveDark"])

        escuro = await self.client.get(f"{API}/themes/active/dark")
        self.assertEqual(escuro.json()["data"]["id"], tema_id)
        claro = await self.client.get(f"{API}/themes/active/light")
        self.assertNotEqual(claro.json()["data"]["id"], tema_id)

    async def test_cor_invalida(self):
        tema = self._tema()
        tema["lightConfig"]["primary"] = "azul"
        response = await self.client.post(f"{API}/themes", json=tema, headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["detail"], "Configurações de tema inválidas")

    async def test_chave_faltando(self):
        tema = self._tema()
        del tema["darkConfig"]["border"]
        response = await self.client.post(f"{API}/themes", json=tema, headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    async def test_tema_padrao_nao_pode_ser_excluido(self):
        temas = (await self.client.get(f"{API}/themes", headers=self.headers)).json()["data"]
        padrao = next(t for t in temas if t["isDefault"])

        response = await self.client.delete(f"{API}/themes/{padrao['id']}", headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.json()["detail"], "Não é possível deletar o tema padrão")

    async def test_tema_inexistente(self):
        response = await self.client.delete(f"{API}/themes/9999", headers=self.headers)
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    async def test_usuario_comum_nao_gerencia_temas(self):
        usuario = await criar_usuario(email="b@x.com")
        response = await self.client.post(f"{API}/themes", json=self._tema(), headers=cabecalho(usuario))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
