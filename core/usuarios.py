"""Ciclo de vida da conta: criação completa, reset de dados e exclusão em cascata."""
import logging
from typing import Optional

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.security import generate_api_token, generate_hash
from models.api_token_model import ApiTokenModel
from models.carteira_model import CarteiraModel
from models.categoria_model import CategoriaModel
from models.enums import TipoUsuario
from models.forma_pagamento_model import FormaPagamentoModel
from models.historico_cancelamento_model import HistoricoCancelamentoModel
from models.lembrete_model import LembreteModel
from models.sessao_admin_model import SessaoAdminModel
from models.tema_model import TemaModel
from models.transacao_model import TransacaoModel
from models.usuario_model import UsuarioModel

logger = logging.getLogger(__name__)

NOME_MASTER_TOKEN = "MasterToken"
DESCRICAO_MASTER_TOKEN = "Token principal do usuário, não removível."


async def buscar_usuario_por_email(session: AsyncSession, email: str) -> Optional[UsuarioModel]:
    result = await session.execute(select(UsuarioModel).where(UsuarioModel.email == email.lower()))
    return result.scalars().first()


async def criar_usuario_completo(
    session: AsyncSession,
    nome: str,
    email: str,
    senha: str,
    telefone: Optional[str] = None,
    tipo_usuario: TipoUsuario = TipoUsuario.NORMAL,
    ativo: bool = True,
    data_expiracao_assinatura=None,
    nome_carteira: str = "Principal",
) -> UsuarioModel:
    """Cria o usuário junto com o MasterToken e a carteira numa única transação."""
    novo_usuario = UsuarioModel(
        nome=nome,
        email=email.lower(),
        senha=generate_hash(senha),
        telefone=telefone,
        tipo_usuario=tipo_usuario,
        ativo=ativo,
        data_expiracao_assinatura=data_expiracao_assinatura,
    )
    session.add(novo_usuario)
    await session.flush()

    session.add(ApiTokenModel(
        usuario_id=novo_usuario.id,
        token=generate_api_token(),
        nome=NOME_MASTER_TOKEN,
        descricao=DESCRICAO_MASTER_TOKEN,
        ativo=True,
        master=True,
        rotacionavel=True,
    ))
    session.add(CarteiraModel(
        usuario_id=novo_usuario.id,
        nome=nome_carteira,
        descricao="Carteira principal",
        saldo_atual=0,
    ))
    await session.commit()
    await session.refresh(novo_usuario)
    logger.info(f"Usuário {novo_usuario.id} criado com carteira e MasterToken")
    return novo_usuario


async def resetar_dados_usuario(session: AsyncSession, usuario_id: int) -> None:
    """Apaga transações, lembretes, categorias pessoais e tokens não-master; mantém conta e carteira."""
    carteiras = select(CarteiraModel.id).where(CarteiraModel.usuario_id == usuario_id)
    await session.execute(delete(TransacaoModel).where(TransacaoModel.carteira_id.in_(carteiras)))
    await session.execute(delete(LembreteModel).where(LembreteModel.usuario_id == usuario_id))
    await session.execute(delete(CategoriaModel).where(
        CategoriaModel.usuario_id == usuario_id,
        CategoriaModel.global_.is_(False),
    ))
    await session.execute(delete(ApiTokenModel).where(
        ApiTokenModel.usuario_id == usuario_id,
        ApiTokenModel.master.is_(False),
    ))
    await session.execute(update(CarteiraModel).where(CarteiraModel.usuario_id == usuario_id).values(saldo_atual=0))
    await session.commit()
    logger.info(f"Dados do usuário {usuario_id} resetados")


async def excluir_usuario_cascata(session: AsyncSession, usuario_id: int) -> None:
    """Remove o usuário e todos os registros dependentes."""
    carteiras = select(CarteiraModel.id).where(CarteiraModel.usuario_id == usuario_id)
    await session.execute(delete(TransacaoModel).where(TransacaoModel.carteira_id.in_(carteiras)))
    await session.execute(delete(CarteiraModel).where(CarteiraModel.usuario_id == usuario_id))
    await session.execute(delete(CategoriaModel).where(CategoriaModel.usuario_id == usuario_id))
    await session.execute(delete(FormaPagamentoModel).where(FormaPagamentoModel.usuario_id == usuario_id))
    await session.execute(delete(ApiTokenModel).where(ApiTokenModel.usuario_id == usuario_id))
    await session.execute(delete(LembreteModel).where(LembreteModel.usuario_id == usuario_id))
    await session.execute(delete(HistoricoCancelamentoModel).where(HistoricoCancelamentoModel.usuario_id == usuario_id))
    await session.execute(delete(SessaoAdminModel).where(
        (SessaoAdminModel.super_admin_id == usuario_id) | (SessaoAdminModel.target_user_id == usuario_id)
    ))
    await session.execute(update(TemaModel).where(TemaModel.usuario_id == usuario_id).values(usuario_id=None))
    await session.execute(delete(UsuarioModel).where(UsuarioModel.id == usuario_id))
    await session.commit()
    logger.info(f"Usuário {usuario_id} excluído com todos os dados")
