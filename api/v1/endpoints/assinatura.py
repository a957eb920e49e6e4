import logging
from datetime import timedelta

from fastapi import APIRouter, status, Depends, HTTPException
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from core.deps import get_current_user, get_session
from core.utils import agora, com_fuso, handle_db_exceptions
from models.enums import StatusAssinatura, TipoCancelamento
from models.historico_cancelamento_model import HistoricoCancelamentoModel
from models.usuario_model import UsuarioModel
from schemas.admin_schema import CancelarAssinaturaSchema
from schemas.usuario_schema import UsuarioSchema

logger = logging.getLogger(__name__)

router = APIRouter()

DIAS_APOS_CANCELAMENTO = 30


async def verificar_assinaturas_expiradas(session: AsyncSession) -> int:
    """Desativa usuários com assinatura cancelada cujo prazo já venceu."""
    result = await session.execute(
        update(UsuarioModel)
        .where(
            UsuarioModel.status_assinatura == StatusAssinatura.CANCELADA,
            UsuarioModel.data_expiracao_assinatura.is_not(None),
            UsuarioModel.data_expiracao_assinatura < agora(),
            UsuarioModel.ativo.is_(True),
        )
        .values(ativo=False, status_assinatura=StatusAssinatura.EXPIRADA)
    )
    await session.commit()
    desativados = result.rowcount or 0
    logger.info(f"Verificação de assinaturas: {desativados} usuário(s) desativado(s)")
    return desativados


@router.post('/cancel')
async def cancelar_assinatura(
    dados: CancelarAssinaturaSchema,
    db: AsyncSession = Depends(get_session),
    usuario_logado: UsuarioModel = Depends(get_current_user),
):
    if usuario_logado.data_cancelamento or usuario_logado.status_assinatura == StatusAssinatura.CANCELADA:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Assinatura já foi cancelada anteriormente")

    momento = agora()
    async with db as session:
        try:
            usuario_logado.data_cancelamento = momento
            usuario_logado.motivo_cancelamento = dados.motivo
            usuario_logado.data_expiracao_assinatura = momento + timedelta(days=DIAS_APOS_CANCELAMENTO)
            usuario_logado.status_assinatura = StatusAssinatura.CANCELADA
            session.add(usuario_logado)
            session.add(HistoricoCancelamentoModel(
                usuario_id=usuario_logado.id,
                data_cancelamento=momento,
                motivo_cancelamento=dados.motivo,
                tipo_cancelamento=TipoCancelamento.VOLUNTARIO,
            ))
            await session.commit()
            await session.refresh(usuario_logado)
        except Exception as e:
            await handle_db_exceptions(session, e)

    logger.info(f"Assinatura do usuário {usuario_logado.id} cancelada")
    return {
        "message": "Assinatura cancelada com sucesso",
        "user": UsuarioSchema.model_validate(usuario_logado),
    }


@router.get('/status')
async def status_assinatura(usuario_logado: UsuarioModel = Depends(get_current_user)):
    return {
        "status": usuario_logado.status_assinatura,
        "data_cancelamento": com_fuso(usuario_logado.data_cancelamento),
        "data_expiracao_assinatura": com_fuso(usuario_logado.data_expiracao_assinatura),
        "motivo_cancelamento": usuario_logado.motivo_cancelamento,
        "is_canceled": usuario_logado.data_cancelamento is not None,
    }
