import logging
import os
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, status, Depends, HTTPException, Query
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from api.v1.endpoints.carteira import obter_carteira_usuario
from api.v1.endpoints.transacao import consulta_com_nomes, transacao_para_schema
from core import graficos
from core.configs import settings
from core.deps import get_current_user, get_session
from core.saldo import despesas_por_categoria_periodo, totais_diarios
from core.utils import agora, arredondar, handle_db_exceptions
from models.enums import TipoTransacao
from models.transacao_model import TransacaoModel
from models.usuario_model import UsuarioModel

logger = logging.getLogger(__name__)

router_relatorios = APIRouter()
router_graficos = APIRouter()


def _ler_data(valor: Optional[str], padrao: date) -> date:
    if not valor:
        return padrao
    try:
        return datetime.strptime(valor, "%Y-%m-%d").date()
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Formato de data inválido. Use YYYY-MM-DD")


def _periodo_grafico(data: Optional[str]):
    try:
        return graficos.periodo_semana(data)
    except graficos.DataGraficoInvalida as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _sem_dados(inicio: date, fim: date):
    return {
        "success": False,
        "message": (
            f"Nenhuma transação encontrada no período de "
            f"{graficos.formatar_data_brasileira(inicio)} a {graficos.formatar_data_brasileira(fim)}"
        ),
        "period": {"start": inicio.isoformat(), "end": fim.isoformat()},
        "data": [],
    }


def _resposta_grafico(nome: str, inicio: date, fim: date, dados):
    return {
        "success": True,
        "filename": nome,
        "url": f"{settings.API_STR}/charts/download/{nome}",
        "period": {"start": inicio.isoformat(), "end": fim.isoformat()},
        "data": dados,
    }


async def _dias_do_periodo(session: AsyncSession, usuario: UsuarioModel, inicio: date, fim: date):
    carteira = await obter_carteira_usuario(session, usuario.id)
    try:
        dias = await totais_diarios(session, carteira.id, inicio, fim, propagar_erro=True)
    except Exception as e:
        await handle_db_exceptions(session, e)
    return carteira, dias


async def _gerar_arquivo(funcao, *args):
    try:
        return await run_in_threadpool(funcao, *args)
    except Exception:
        logger.exception(f"Erro ao gerar arquivo com {funcao.__name__}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Erro ao gerar arquivo")


@router_graficos.get('/bar')
async def grafico_receitas_despesas(
    data: Optional[str] = Query(default=None, alias="date"),
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    inicio, fim = _periodo_grafico(data)
    async with db as session:
        _, dias = await _dias_do_periodo(session, usuario_logado, inicio, fim)

    if not any(d["income"] or d["expense"] for d in dias):
        return _sem_dados(inicio, fim)

    nome = graficos.nome_arquivo("chart-receitas-despesas", "svg", inicio.isoformat(), fim.isoformat())
    caminho = os.path.join(graficos.diretorio_graficos(), nome)
    titulo = f"Receitas x Despesas ({graficos.formatar_data_brasileira(inicio)} a {graficos.formatar_data_brasileira(fim)})"
    await _gerar_arquivo(graficos.grafico_barras, dias, caminho, titulo, "svg")
    return _resposta_grafico(nome, inicio, fim, dias)


@router_graficos.get('/pizza')
async def grafico_despesas_categoria(
    data: Optional[str] = Query(default=None, alias="date"),
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    inicio, fim = _periodo_grafico(data)
    async with db as session:
        carteira = await obter_carteira_usuario(session, usuario_logado.id)
        try:
            categorias = await despesas_por_categoria_periodo(session, carteira.id, inicio, fim, propagar_erro=True)
        except Exception as e:
            await handle_db_exceptions(session, e)

    if not categorias:
        return _sem_dados(inicio, fim)

    nome = graficos.nome_arquivo("chart-despesas-categoria", "svg", inicio.isoformat(), fim.isoformat())
    caminho = os.path.join(graficos.diretorio_graficos(), nome)
    await _gerar_arquivo(graficos.grafico_pizza, categorias, caminho, "Despesas por categoria")
    return _resposta_grafico(nome, inicio, fim, categorias)


@router_graficos.get('/bar2')
async def grafico_receitas_despesas_png(
    data: Optional[str] = Query(default=None, alias="date"),
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    inicio, fim = _periodo_grafico(data)
    async with db as session:
        _, dias = await _dias_do_periodo(session, usuario_logado, inicio, fim)

    if not any(d["income"] or d["expense"] for d in dias):
        return _sem_dados(inicio, fim)

    nome = graficos.nome_arquivo("chart-semanal", "png", inicio.isoformat(), fim.isoformat())
    caminho = os.path.join(graficos.diretorio_graficos(), nome)
    await _gerar_arquivo(graficos.grafico_barras, dias, caminho, "Receitas x Despesas", "png")
    return _resposta_grafico(nome, inicio, fim, dias)


@router_graficos.get('/report')
async def relatorio_semanal_png(
    data: Optional[str] = Query(default=None, alias="date"),
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    inicio, fim = _periodo_grafico(data)
    async with db as session:
        carteira, dias = await _dias_do_periodo(session, usuario_logado, inicio, fim)
        try:
            categorias = await despesas_por_categoria_periodo(session, carteira.id, inicio, fim, propagar_erro=True)
        except Exception as e:
            await handle_db_exceptions(session, e)

    if not any(d["income"] or d["expense"] for d in dias):
        return _sem_dados(inicio, fim)

    nome = graficos.nome_arquivo("relatorio", "png", fim.isoformat())
    caminho = os.path.join(graficos.diretorio_graficos(), nome)
    titulo = f"Resumo semanal de {usuario_logado.nome}"
    await _gerar_arquivo(graficos.resumo_semanal, dias, categorias, caminho, titulo)
    return _resposta_grafico(nome, inicio, fim, {"days": dias, "categories": categorias})


@router_graficos.get('/download/{filename}')
async def download_grafico(filename: str, usuario_logado: UsuarioModel = Depends(get_current_user)):
    caminho = graficos.caminho_seguro(graficos.diretorio_graficos(), filename)
    if not caminho or not os.path.isfile(caminho):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Arquivo não encontrado")
    return FileResponse(caminho, filename=filename)


@router_relatorios.get('/pdf')
async def relatorio_pdf(
    start_date: Optional[str] = Query(default=None),
    end_date: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    hoje = agora().date()
    inicio = _ler_data(start_date, hoje.replace(day=1))
    fim = _ler_data(end_date, hoje)
    if inicio > fim:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Data inicial maior que a data final")

    async with db as session:
        carteira = await obter_carteira_usuario(session, usuario_logado.id)
        try:
            query = (
                consulta_com_nomes()
                .where(
                    TransacaoModel.carteira_id == carteira.id,
                    TransacaoModel.data_transacao >= inicio,
                    TransacaoModel.data_transacao <= fim,
                )
                .order_by(TransacaoModel.data_transacao)
            )
            result = await session.execute(query)
            transacoes = [transacao_para_schema(*linha).model_dump(mode="json") for linha in result.all()]
        except Exception as e:
            await handle_db_exceptions(session, e)

    receitas = sum(arredondar(t["valor"]) for t in transacoes if t["tipo"] == TipoTransacao.RECEITA.value)
    despesas = sum(arredondar(t["valor"]) for t in transacoes if t["tipo"] == TipoTransacao.DESPESA.value)
    totais = {"income": arredondar(receitas), "expense": arredondar(despesas), "balance": arredondar(receitas - despesas)}

    nome = graficos.nome_arquivo("relatorio", "pdf", inicio.isoformat(), fim.isoformat())
    caminho = os.path.join(graficos.diretorio_relatorios(), nome)
    html = graficos.html_relatorio(usuario_logado.nome, inicio, fim, transacoes, totais)
    await _gerar_arquivo(graficos.gerar_pdf, html, caminho)

    return {
        "success": True,
        "filename": nome,
        "downloadUrl": f"{settings.API_STR}/reports/download/{nome}",
        "period": {"start": inicio.isoformat(), "end": fim.isoformat()},
        "totals": totais,
        "transactionCount": len(transacoes),
    }


@router_relatorios.get('/download/{filename}')
async def download_relatorio(filename: str, usuario_logado: UsuarioModel = Depends(get_current_user)):
    caminho = graficos.caminho_seguro(graficos.diretorio_relatorios(), filename)
    if not caminho or not os.path.isfile(caminho):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Arquivo não encontrado")
    return FileResponse(caminho, media_type="application/pdf", filename=filename)
