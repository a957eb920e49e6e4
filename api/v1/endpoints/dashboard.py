from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.v1.endpoints.carteira import obter_carteira_usuario
from core.deps import get_current_user, get_session
from core.saldo import despesas_por_categoria, resumo_mensal, totais_receita_despesa
from models.usuario_model import UsuarioModel

router = APIRouter()


def com_percentual(categorias):
    total = sum((c["total"] for c in categorias), Decimal("0"))
    for categoria in categorias:
        categoria["percentage"] = round(float(categoria["total"] / total * 100)) if total else 0
    return categorias


@router.get('/summary')
async def get_resumo(
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user)
):
    # falhas de agregação viram zero no painel
    async with db as session:
        carteira = await obter_carteira_usuario(session, usuario_logado.id)
        mensal = await resumo_mensal(session, carteira.id)
        categorias = await despesas_por_categoria(session, carteira.id)
        totais = await totais_receita_despesa(session, carteira.id)

    return {
        "monthlyData": mensal,
        "expensesByCategory": com_percentual(categorias),
        "totalIncome": totais["totalIncome"],
        "totalExpenses": totais["totalExpenses"],
    }
