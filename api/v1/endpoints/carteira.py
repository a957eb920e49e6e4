import logging
from typing import Optional

from fastapi import APIRouter, status, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.deps import get_session, get_current_user
from core.saldo import calcular_saldo
from core.utils import handle_db_exceptions
from models.carteira_model import CarteiraModel
from models.usuario_model import UsuarioModel
from schemas.carteira_schema import CarteiraSchema, UpdateCarteiraSchema

logger = logging.getLogger(__name__)

router = APIRouter()

CABECALHOS_SEM_CACHE = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


async def buscar_carteira_usuario(session: AsyncSession, usuario_id: int) -> Optional[CarteiraModel]:
    query = select(CarteiraModel).where(CarteiraModel.usuario_id == usuario_id).order_by(CarteiraModel.id)
    result = await session.execute(query)
    return result.scalars().first()


async def obter_carteira_usuario(session: AsyncSession, usuario_id: int) -> CarteiraModel:
    carteira = await buscar_carteira_usuario(session, usuario_id)
    if not carteira:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Carteira não encontrada")
    return carteira


async def carteira_com_saldo(session: AsyncSession, carteira: CarteiraModel) -> CarteiraSchema:
    # o saldo armazenado não é confiável, sempre recalculado a partir das transações
    saldo = await calcular_saldo(session, carteira.id)
    dados = CarteiraSchema.model_validate(carteira)
    return dados.model_copy(update={"saldo_atual": saldo})


def _sem_cache(response: Response) -> None:
    for chave, valor in CABECALHOS_SEM_CACHE.items():
        response.headers[chave] = valor


@router.get('/current', response_model=CarteiraSchema)
async def get_carteira_atual(
    response: Response,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    async with db as session:
        carteira = await buscar_carteira_usuario(session, usuario_logado.id)
        if not carteira:
            logger.info(f"Usuário {usuario_logado.id} sem carteira, criando carteira Principal")
            try:
                carteira = CarteiraModel(
                    usuario_id=usuario_logado.id,
                    nome="Principal",
                    descricao="Carteira principal",
                    saldo_atual=0,
                )
                session.add(carteira)
                await session.commit()
                await session.refresh(carteira)
            except Exception as e:
                await handle_db_exceptions(session, e)

        resposta = await carteira_com_saldo(session, carteira)

    _sem_cache(response)
    return resposta


@router.put('/current', response_model=CarteiraSchema)
async def put_carteira_atual(
    dados: UpdateCarteiraSchema,
    response: Response,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    async with db as session:
        try:
            carteira = await buscar_carteira_usuario(session, usuario_logado.id)
            if not carteira:
                carteira = CarteiraModel(
                    usuario_id=usuario_logado.id,
                    nome=dados.nome or "Principal",
                    descricao=dados.descricao or "Carteira principal",
                    saldo_atual=0,
                )
                session.add(carteira)
                response.status_code = status.HTTP_201_CREATED
            else:
                for campo, valor in dados.model_dump(exclude_unset=True).items():
                    setattr(carteira, campo, valor)

            await session.commit()
            await session.refresh(carteira)
        except Exception as e:
            await handle_db_exceptions(session, e)

        resposta = await carteira_com_saldo(session, carteira)

    _sem_cache(response)
    return resposta
