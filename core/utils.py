import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from fastapi import HTTPException, status
from pytz import timezone
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)

FUSO_SP = timezone('America/Sao_Paulo')
CENTAVOS = Decimal("0.01")


async def handle_db_exceptions(session, exc):
    # Rollback da sessão em caso de erro
    await session.rollback()

    # Tratamento específico para IntegrityError
    if isinstance(exc, IntegrityError):
        logger.warning(f"Erro de integridade: {exc.orig}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Erro de integridade no banco de dados: {exc.orig}"
        )

    # Tratamento genérico para erros do SQLAlchemy
    elif isinstance(exc, SQLAlchemyError):
        logger.error(f"Erro de banco de dados: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro no banco de dados, tente novamente mais tarde."
        )

    # Tratamento para qualquer outra exceção
    else:
        logger.exception(f"Erro geral: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Erro interno do servidor"
        )


def agora() -> datetime:
    return datetime.now(tz=FUSO_SP)


def com_fuso(data: Optional[datetime]) -> Optional[datetime]:
    """Datas vindas do banco sem fuso são tratadas como horário de São Paulo."""
    if data is None or data.tzinfo is not None:
        return data
    return FUSO_SP.localize(data)


def arredondar(valor) -> Decimal:
    if valor is None:
        return Decimal("0.00")
    return Decimal(str(valor)).quantize(CENTAVOS, rounding=ROUND_HALF_UP)
