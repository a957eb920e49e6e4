"""
Sessões de personificação (super admin atuando como outro usuário).

Invariante: no máximo uma sessão aberta (data_fim nula) por usuário alvo. O
fechamento das sessões anteriores e a abertura da nova acontecem numa única
transação, com a linha do usuário alvo bloqueada para serializar pedidos
concorrentes.
"""
import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.utils import agora
from models.sessao_admin_model import SessaoAdminModel
from models.usuario_model import UsuarioModel

logger = logging.getLogger(__name__)


async def buscar_sessao_ativa(session: AsyncSession, target_user_id: int) -> Optional[SessaoAdminModel]:
    query = (
        select(SessaoAdminModel)
        .where(
            SessaoAdminModel.target_user_id == target_user_id,
            SessaoAdminModel.ativo.is_(True),
            SessaoAdminModel.data_fim.is_(None),
        )
        .order_by(SessaoAdminModel.data_inicio.desc())
    )
    result = await session.execute(query)
    return result.scalars().first()


async def iniciar_sessao_personificacao(session: AsyncSession, super_admin_id: int, target_user_id: int) -> SessaoAdminModel:
    try:
        await session.execute(
            select(UsuarioModel.id).where(UsuarioModel.id == target_user_id).with_for_update()
        )
        await session.execute(
            update(SessaoAdminModel)
            .where(
                SessaoAdminModel.target_user_id == target_user_id,
                SessaoAdminModel.data_fim.is_(None),
            )
            .values(data_fim=agora(), ativo=False)
        )
        nova_sessao = SessaoAdminModel(
            super_admin_id=super_admin_id,
            target_user_id=target_user_id,
            data_inicio=agora(),
            ativo=True,
        )
        session.add(nova_sessao)
        await session.commit()
        await session.refresh(nova_sessao)
    except Exception:
        await session.rollback()
        raise

    logger.info(f"Personificação iniciada: admin {super_admin_id} -> usuário {target_user_id} (sessão {nova_sessao.id})")
    return nova_sessao


async def encerrar_sessao_personificacao(session: AsyncSession, super_admin_id: int, target_user_id: int) -> bool:
    """Fecha apenas as sessões abertas por ``super_admin_id``; a de outro admin sobre o mesmo alvo continua."""
    result = await session.execute(
        update(SessaoAdminModel)
        .where(
            SessaoAdminModel.super_admin_id == super_admin_id,
            SessaoAdminModel.target_user_id == target_user_id,
            SessaoAdminModel.data_fim.is_(None),
        )
        .values(data_fim=agora(), ativo=False)
    )
    await session.commit()
    encerradas = result.rowcount or 0
    logger.info(f"Personificação encerrada para usuário {target_user_id} ({encerradas} sessão(ões))")
    return encerradas > 0
