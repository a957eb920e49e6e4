"""
Agregações do livro de transações de uma carteira.

Nenhum saldo armazenado é considerado confiável: tudo é recalculado a partir da
tabela TRANSACAO. Cada função recebe ``propagar_erro``; quem chama decide se uma
falha do banco vira zero (dashboards) ou sobe como exceção (relatórios e
exportações financeiras).
"""
import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import case, extract, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.utils import arredondar
from models.carteira_model import CarteiraModel
from models.categoria_model import CategoriaModel
from models.enums import TipoTransacao
from models.forma_pagamento_model import FormaPagamentoModel
from models.transacao_model import TransacaoModel

logger = logging.getLogger(__name__)

MESES_ABREVIADOS = ["Jan", "Fev", "Mar", "Abr", "Mai", "Jun", "Jul", "Ago", "Set", "Out", "Nov", "Dez"]

_valor_assinado = case(
    (TransacaoModel.tipo == TipoTransacao.RECEITA, TransacaoModel.valor),
    (TransacaoModel.tipo == TipoTransacao.DESPESA, -TransacaoModel.valor),
    else_=0,
)
_valor_receita = case((TransacaoModel.tipo == TipoTransacao.RECEITA, TransacaoModel.valor), else_=0)
_valor_despesa = case((TransacaoModel.tipo == TipoTransacao.DESPESA, TransacaoModel.valor), else_=0)


def _falha(nome: str, exc: Exception, propagar_erro: bool, padrao):
    if propagar_erro:
        raise exc
    logger.error(f"Erro em {nome}, retornando valor padrão: {exc}")
    return padrao


async def calcular_saldo(session: AsyncSession, carteira_id: int, propagar_erro: bool = False) -> Decimal:
    try:
        query = select(func.coalesce(func.sum(_valor_assinado), 0)).where(TransacaoModel.carteira_id == carteira_id)
        result = await session.execute(query)
        return arredondar(result.scalar())
    except SQLAlchemyError as e:
        return _falha("calcular_saldo", e, propagar_erro, Decimal("0.00"))


async def resumo_mensal(session: AsyncSession, carteira_id: int, propagar_erro: bool = False) -> List[Dict]:
    ano = extract('year', TransacaoModel.data_transacao)
    mes = extract('month', TransacaoModel.data_transacao)
    try:
        query = (
            select(
                ano.label("ano"),
                mes.label("mes"),
                func.coalesce(func.sum(_valor_receita), 0).label("receitas"),
                func.coalesce(func.sum(_valor_despesa), 0).label("despesas"),
            )
            .where(TransacaoModel.carteira_id == carteira_id)
            .group_by(ano, mes)
            .order_by(ano, mes)
        )
        result = await session.execute(query)
        linhas = result.all()
    except SQLAlchemyError as e:
        return _falha("resumo_mensal", e, propagar_erro, [])

    return [
        {
            "month": MESES_ABREVIADOS[int(linha.mes) - 1],
            "month_num": int(linha.mes),
            "year": int(linha.ano),
            "income": arredondar(linha.receitas),
            "expense": arredondar(linha.despesas),
        }
        for linha in linhas
    ]


async def despesas_por_categoria(
    session: AsyncSession,
    carteira_id: int,
    hoje: Optional[date] = None,
    propagar_erro: bool = False,
) -> List[Dict]:
    hoje = hoje or date.today()
    inicio_mes = hoje.replace(day=1)
    proximo_mes = date(hoje.year + 1, 1, 1) if hoje.month == 12 else date(hoje.year, hoje.month + 1, 1)
    return await despesas_por_categoria_periodo(session, carteira_id, inicio_mes, proximo_mes, propagar_erro, fim_exclusivo=True)


async def despesas_por_categoria_periodo(
    session: AsyncSession,
    carteira_id: int,
    inicio: date,
    fim: date,
    propagar_erro: bool = False,
    fim_exclusivo: bool = False,
) -> List[Dict]:
    total = func.sum(TransacaoModel.valor)
    limite_fim = TransacaoModel.data_transacao < fim if fim_exclusivo else TransacaoModel.data_transacao <= fim
    try:
        query = (
            select(
                CategoriaModel.id,
                CategoriaModel.nome,
                CategoriaModel.cor,
                CategoriaModel.icone,
                total.label("total"),
            )
            .join(CategoriaModel, TransacaoModel.categoria_id == CategoriaModel.id)
            .where(
                TransacaoModel.carteira_id == carteira_id,
                TransacaoModel.tipo == TipoTransacao.DESPESA,
                TransacaoModel.data_transacao >= inicio,
                limite_fim,
            )
            .group_by(CategoriaModel.id, CategoriaModel.nome, CategoriaModel.cor, CategoriaModel.icone)
            .order_by(total.desc())
        )
        result = await session.execute(query)
        linhas = result.all()
    except SQLAlchemyError as e:
        return _falha("despesas_por_categoria", e, propagar_erro, [])

    return [
        {
            "category_id": linha.id,
            "category_name": linha.nome,
            "color": linha.cor,
            "icon": linha.icone,
            "total": arredondar(linha.total),
        }
        for linha in linhas
    ]


async def totais_receita_despesa(session: AsyncSession, carteira_id: int, propagar_erro: bool = False) -> Dict[str, Decimal]:
    try:
        query = select(
            func.coalesce(func.sum(_valor_receita), 0),
            func.coalesce(func.sum(_valor_despesa), 0),
        ).where(TransacaoModel.carteira_id == carteira_id)
        result = await session.execute(query)
        receitas, despesas = result.one()
    except SQLAlchemyError as e:
        return _falha("totais_receita_despesa", e, propagar_erro, {"totalIncome": Decimal("0.00"), "totalExpenses": Decimal("0.00")})

    return {"totalIncome": arredondar(receitas), "totalExpenses": arredondar(despesas)}


async def totais_por_forma_pagamento(session: AsyncSession, usuario_id: int, carteira_id: int) -> List[Dict]:
    """Totais por forma de pagamento visível ao usuário (globais e próprias)."""
    query_formas = (
        select(FormaPagamentoModel)
        .where(
            FormaPagamentoModel.ativo.is_(True),
            or_(FormaPagamentoModel.global_.is_(True), FormaPagamentoModel.usuario_id == usuario_id),
        )
        .order_by(FormaPagamentoModel.nome)
    )
    formas = (await session.execute(query_formas)).scalars().all()

    totais = []
    for forma in formas:
        query = select(
            func.coalesce(func.sum(_valor_receita), 0),
            func.coalesce(func.sum(_valor_despesa), 0),
            func.count(TransacaoModel.id),
        ).where(
            TransacaoModel.carteira_id == carteira_id,
            or_(
                TransacaoModel.forma_pagamento_id == forma.id,
                (TransacaoModel.forma_pagamento_id.is_(None)) & (TransacaoModel.metodo_pagamento == forma.nome),
            ),
        )
        receitas, despesas, quantidade = (await session.execute(query)).one()
        totais.append({
            "id": forma.id,
            "nome": forma.nome,
            "cor": forma.cor,
            "icone": forma.icone,
            "global": forma.global_,
            "income": arredondar(receitas),
            "expense": arredondar(despesas),
            "total": arredondar(Decimal(str(receitas)) - Decimal(str(despesas))),
            "transactionCount": quantidade,
        })
    return totais


async def estatisticas_carteiras(session: AsyncSession) -> List[Dict]:
    """Saldo e quantidade de transações de todas as carteiras; erros propagam."""
    query = (
        select(
            CarteiraModel.id,
            CarteiraModel.usuario_id,
            func.coalesce(func.sum(_valor_assinado), 0).label("saldo"),
            func.count(TransacaoModel.id).label("quantidade"),
        )
        .outerjoin(TransacaoModel, TransacaoModel.carteira_id == CarteiraModel.id)
        .group_by(CarteiraModel.id, CarteiraModel.usuario_id)
    )
    result = await session.execute(query)
    return [
        {
            "walletId": linha.id,
            "userId": linha.usuario_id,
            "balance": arredondar(linha.saldo),
            "transactionCount": linha.quantidade,
        }
        for linha in result.all()
    ]


async def totais_diarios(
    session: AsyncSession,
    carteira_id: int,
    inicio: date,
    fim: date,
    propagar_erro: bool = True,
) -> List[Dict]:
    """Receitas e despesas por dia no intervalo fechado [inicio, fim], dias sem movimento incluídos."""
    try:
        query = (
            select(
                TransacaoModel.data_transacao,
                func.coalesce(func.sum(_valor_receita), 0).label("receitas"),
                func.coalesce(func.sum(_valor_despesa), 0).label("despesas"),
            )
            .where(
                TransacaoModel.carteira_id == carteira_id,
                TransacaoModel.data_transacao >= inicio,
                TransacaoModel.data_transacao <= fim,
            )
            .group_by(TransacaoModel.data_transacao)
        )
        result = await session.execute(query)
        por_dia = {linha.data_transacao: linha for linha in result.all()}
    except SQLAlchemyError as e:
        return _falha("totais_diarios", e, propagar_erro, [])

    dias = []
    atual = inicio
    while atual <= fim:
        linha = por_dia.get(atual)
        dias.append({
            "date": atual.isoformat(),
            "income": arredondar(linha.receitas if linha else 0),
            "expense": arredondar(linha.despesas if linha else 0),
        })
        atual += timedelta(days=1)
    return dias
