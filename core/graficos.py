"""
Geração de arquivos de relatório: gráficos com matplotlib (SVG/PNG) e PDF com
pdfkit a partir de HTML. Todas as funções aqui são síncronas e bloqueantes;
os endpoints as chamam via ``run_in_threadpool``.
"""
import hashlib
import logging
import os
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pdfkit

from core.configs import settings
from core.utils import agora

logger = logging.getLogger(__name__)

COR_RECEITA = "#4CAF50"
COR_DESPESA = "#FF6B6B"
DIAS_SEMANA = ["Seg", "Ter", "Qua", "Qui", "Sex", "Sáb", "Dom"]

ESTILO_CELULA = "border: 1px solid #dddddd; text-align: left; padding: 8px;"


class DataGraficoInvalida(ValueError):
    pass


def diretorio_graficos() -> str:
    caminho = os.path.join(settings.PUBLIC_DIR, "charts")
    os.makedirs(caminho, exist_ok=True)
    return caminho


def diretorio_relatorios() -> str:
    caminho = os.path.join(settings.PUBLIC_DIR, "reports")
    os.makedirs(caminho, exist_ok=True)
    return caminho


def periodo_semana(data: Optional[str], hoje: Optional[date] = None) -> Tuple[date, date]:
    """Sete dias terminando em ``data`` ou, sem data, a última semana completa (segunda a domingo)."""
    hoje = hoje or agora().date()
    if data:
        try:
            fim = datetime.strptime(data, "%Y-%m-%d").date()
        except ValueError:
            raise DataGraficoInvalida("Formato de data inválido. Use YYYY-MM-DD")
        if fim > hoje:
            raise DataGraficoInvalida("Data não pode ser no futuro")
        return fim - timedelta(days=6), fim

    segunda_atual = hoje - timedelta(days=hoje.weekday())
    inicio = segunda_atual - timedelta(days=7)
    return inicio, inicio + timedelta(days=6)


def hash_arquivo() -> str:
    return hashlib.sha1(agora().isoformat().encode()).hexdigest()[:8]


def nome_arquivo(prefixo: str, extensao: str, *partes: str) -> str:
    return "-".join([prefixo, *partes, hash_arquivo()]) + f".{extensao}"


def caminho_seguro(diretorio: str, nome: str) -> Optional[str]:
    """Caminho do arquivo dentro de ``diretorio`` ou None se o nome tentar sair dele."""
    if not nome or nome != os.path.basename(nome) or nome.startswith("."):
        return None
    base = os.path.realpath(diretorio)
    caminho = os.path.realpath(os.path.join(base, nome))
    if os.path.dirname(caminho) != base:
        return None
    return caminho


def formatar_valor_brasileiro(valor) -> str:
    """Formata o valor monetário no padrão brasileiro"""
    valor_float = float(valor)
    return f'R$ {valor_float:,.2f}'.replace('.', 'X').replace(',', '.').replace('X', ',')


def formatar_data_brasileira(data) -> str:
    if isinstance(data, str):
        data = datetime.strptime(data[:10], '%Y-%m-%d').date()
    return data.strftime('%d/%m/%Y')


def _rotulos_dias(dias: List[Dict]) -> List[str]:
    rotulos = []
    for dia in dias:
        data = datetime.strptime(dia["date"], "%Y-%m-%d").date()
        rotulos.append(f"{DIAS_SEMANA[data.weekday()]}\n{data.strftime('%d/%m')}")
    return rotulos


def _barras(eixo, dias: List[Dict]) -> None:
    posicoes = range(len(dias))
    largura = 0.4
    eixo.bar([p - largura / 2 for p in posicoes], [float(d["income"]) for d in dias], largura, label="Receitas", color=COR_RECEITA)
    eixo.bar([p + largura / 2 for p in posicoes], [float(d["expense"]) for d in dias], largura, label="Despesas", color=COR_DESPESA)
    eixo.set_xticks(list(posicoes))
    eixo.set_xticklabels(_rotulos_dias(dias), fontsize=8)
    eixo.set_ylabel("R$")
    eixo.grid(axis="y", alpha=0.3)
    eixo.legend()


def _pizza(eixo, categorias: List[Dict]) -> None:
    eixo.pie(
        [float(c["total"]) for c in categorias],
        labels=[c["category_name"] for c in categorias],
        colors=[c.get("color") or COR_DESPESA for c in categorias],
        autopct="%1.1f%%",
        startangle=90,
    )
    eixo.axis("equal")


def _salvar(figura, caminho: str, formato: str) -> str:
    try:
        figura.savefig(caminho, format=formato, bbox_inches="tight", dpi=120)
    finally:
        plt.close(figura)
    logger.info(f"Gráfico gerado: {caminho}")
    return caminho


def grafico_barras(dias: List[Dict], caminho: str, titulo: str, formato: str = "svg") -> str:
    figura, eixo = plt.subplots(figsize=(10, 5))
    _barras(eixo, dias)
    eixo.set_title(titulo)
    return _salvar(figura, caminho, formato)


def grafico_pizza(categorias: List[Dict], caminho: str, titulo: str) -> str:
    figura, eixo = plt.subplots(figsize=(7, 7))
    _pizza(eixo, categorias)
    eixo.set_title(titulo)
    return _salvar(figura, caminho, "svg")


def resumo_semanal(dias: List[Dict], categorias: List[Dict], caminho: str, titulo: str) -> str:
    receitas = sum((d["income"] for d in dias), Decimal("0"))
    despesas = sum((d["expense"] for d in dias), Decimal("0"))

    figura, (eixo_barras, eixo_pizza) = plt.subplots(1, 2, figsize=(14, 6))
    _barras(eixo_barras, dias)
    eixo_barras.set_title("Receitas x Despesas")
    if categorias:
        _pizza(eixo_pizza, categorias)
        eixo_pizza.set_title("Despesas por categoria")
    else:
        eixo_pizza.axis("off")
        eixo_pizza.text(0.5, 0.5, "Sem despesas no período", ha="center", va="center")

    figura.suptitle(
        f"{titulo}\nReceitas {formatar_valor_brasileiro(receitas)} | "
        f"Despesas {formatar_valor_brasileiro(despesas)} | "
        f"Saldo {formatar_valor_brasileiro(receitas - despesas)}"
    )
    return _salvar(figura, caminho, "png")


def html_relatorio(nome_usuario: str, inicio: date, fim: date, transacoes: List[Dict], totais: Dict) -> str:
    linhas = "".join(
        f"<tr>"
        f"<td style='{ESTILO_CELULA}'>{formatar_data_brasileira(t['data_transacao'])}</td>"
        f"<td style='{ESTILO_CELULA}'>{t['descricao']}</td>"
        f"<td style='{ESTILO_CELULA}'>{t['categoria_nome'] or '-'}</td>"
        f"<td style='{ESTILO_CELULA}'>{t['tipo']}</td>"
        f"<td style='{ESTILO_CELULA}'>{formatar_valor_brasileiro(t['valor'])}</td>"
        f"</tr>"
        for t in transacoes
    )
    return (
        f"<html><head><meta charset='utf-8'></head><body>"
        f"<h2>Relatório financeiro</h2>"
        f"<p>{nome_usuario}<br>Período: {formatar_data_brasileira(inicio)} a {formatar_data_brasileira(fim)}</p>"
        f"<table style='border-collapse: collapse; width: 100%;'>"
        f"<thead><tr style='background-color: #f2f2f2;'>"
        f"<th style='{ESTILO_CELULA}'>Data</th>"
        f"<th style='{ESTILO_CELULA}'>Descrição</th>"
        f"<th style='{ESTILO_CELULA}'>Categoria</th>"
        f"<th style='{ESTILO_CELULA}'>Tipo</th>"
        f"<th style='{ESTILO_CELULA}'>Valor</th>"
        f"</tr></thead><tbody>{linhas}</tbody></table><br>"
        f"<h4>Resumo do período:</h4>"
        f"<table style='border-collapse: collapse; width: 100%;'>"
        f"<tr style='background-color: #f2f2f2;'>"
        f"<th style='{ESTILO_CELULA}'>Receitas</th>"
        f"<th style='{ESTILO_CELULA}'>Despesas</th>"
        f"<th style='{ESTILO_CELULA}'>Saldo</th>"
        f"</tr><tr>"
        f"<td style='{ESTILO_CELULA}'>{formatar_valor_brasileiro(totais['income'])}</td>"
        f"<td style='{ESTILO_CELULA}'>{formatar_valor_brasileiro(totais['expense'])}</td>"
        f"<td style='{ESTILO_CELULA}'>{formatar_valor_brasileiro(totais['balance'])}</td>"
        f"</tr></table>"
        f"</body></html>"
    )


def gerar_pdf(html: str, caminho: str) -> str:
    pdfkit.from_string(html, caminho, options={"encoding": "UTF-8"})
    logger.info(f"Relatório PDF gerado: {caminho}")
    return caminho
