"""
Dados globais do sistema: categorias e formas de pagamento padrão, paleta de
cores das categorias globais, tema padrão e o super admin inicial.
"""
import logging
from datetime import timedelta
from typing import Dict, List

from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.configs import settings
from core.usuarios import buscar_usuario_por_email, criar_usuario_completo
from core.utils import agora
from models.categoria_model import CategoriaModel
from models.enums import TipoTransacao, TipoUsuario
from models.forma_pagamento_model import FormaPagamentoModel
from models.tema_model import TemaModel
from models.transacao_model import TransacaoModel
from models.usuario_model import UsuarioModel

logger = logging.getLogger(__name__)

DESPESA = TipoTransacao.DESPESA.value
RECEITA = TipoTransacao.RECEITA.value

CATEGORIAS_PADRAO: List[Dict[str, str]] = [
    {"nome": "Alimentação", "tipo": DESPESA, "cor": "#FF6B6B", "icone": "🍽️", "descricao": "Gastos com alimentação e refeições"},
    {"nome": "Transporte", "tipo": DESPESA, "cor": "#4ECDC4", "icone": "🚗", "descricao": "Gastos com transporte e locomoção"},
    {"nome": "Moradia", "tipo": DESPESA, "cor": "#45B7D1", "icone": "🏠", "descricao": "Gastos com moradia e aluguel"},
    {"nome": "Saúde", "tipo": DESPESA, "cor": "#96CEB4", "icone": "🏥", "descricao": "Gastos com saúde e medicamentos"},
    {"nome": "Educação", "tipo": DESPESA, "cor": "#FFEAA7", "icone": "📚", "descricao": "Gastos com educação e cursos"},
    {"nome": "Lazer", "tipo": DESPESA, "cor": "#DDA0DD", "icone": "🎮", "descricao": "Gastos com lazer e entretenimento"},
    {"nome": "Vestuário", "tipo": DESPESA, "cor": "#F8BBD9", "icone": "👕", "descricao": "Gastos com roupas e acessórios"},
    {"nome": "Serviços", "tipo": DESPESA, "cor": "#FFB74D", "icone": "🔧", "descricao": "Gastos com serviços diversos"},
    {"nome": "Impostos", "tipo": DESPESA, "cor": "#A1887F", "icone": "💰", "descricao": "Pagamento de impostos e taxas"},
    {"nome": "Outros", "tipo": DESPESA, "cor": "#90A4AE", "icone": "📦", "descricao": "Outros gastos diversos"},
    {"nome": "Salário", "tipo": RECEITA, "cor": "#4CAF50", "icone": "💼", "descricao": "Receita de salário e trabalho"},
    {"nome": "Freelance", "tipo": RECEITA, "cor": "#8BC34A", "icone": "💻", "descricao": "Receita de trabalhos freelancer"},
    {"nome": "Investimentos", "tipo": RECEITA, "cor": "#FFC107", "icone": "📈", "descricao": "Receita de investimentos"},
    {"nome": "Presentes", "tipo": RECEITA, "cor": "#E91E63", "icone": "🎁", "descricao": "Receita de presentes e doações"},
    {"nome": "Reembolso", "tipo": RECEITA, "cor": "#9C27B0", "icone": "💸", "descricao": "Reembolsos e devoluções"},
    {"nome": "Outros", "tipo": RECEITA, "cor": "#607D8B", "icone": "📦", "descricao": "Outras receitas diversas"},
]

FORMAS_PAGAMENTO_PADRAO: List[Dict[str, str]] = [
    {"nome": "PIX", "descricao": "Pagamento via PIX", "icone": "📱", "cor": "#32CD32"},
    {"nome": "Cartão de Crédito", "descricao": "Pagamento com cartão de crédito", "icone": "💳", "cor": "#FF6B35"},
    {"nome": "Dinheiro", "descricao": "Pagamento em dinheiro", "icone": "💵", "cor": "#4CAF50"},
    {"nome": "Cartão de Débito", "descricao": "Pagamento com cartão de débito", "icone": "🏦", "cor": "#2196F3"},
    {"nome": "Transferência", "descricao": "Transferência bancária", "icone": "🏛️", "cor": "#9C27B0"},
    {"nome": "Boleto", "descricao": "Pagamento via boleto", "icone": "📄", "cor": "#FF9800"},
]

PALETA_CATEGORIAS: Dict[str, str] = {
    "Alimentação": "#FF6B6B",
    "Transporte": "#4ECDC4",
    "Moradia": "#45B7D1",
    "Saúde": "#96CEB4",
    "Educação": "#FFEAA7",
    "Lazer": "#DDA0DD",
    "Vestuário": "#F8BBD9",
    "Serviços": "#FFB74D",
    "Impostos": "#A1887F",
    "Imposto": "#A1887F",
    "Investimento": "#FFC107",
    "Investimentos": "#FFC107",
    "Doações": "#E91E63",
    "Pets": "#8BC34A",
    "Viagem": "#9C27B0",
    "Outros": "#90A4AE",
    "Salário": "#4CAF50",
    "Freelance": "#8BC34A",
    "Presentes": "#E91E63",
    "Reembolso": "#9C27B0",
}

NOME_TEMA_PADRAO = "Padrão Dindão Finanças"

TEMA_PADRAO_CLARO = {
    "background": "0 0% 98%",
    "foreground": "240 10% 3.9%",
    "primary": "142 76% 36%",
    "primaryForeground": "0 0% 98%",
    "secondary": "45 93% 47%",
    "secondaryForeground": "0 0% 9%",
    "muted": "240 4.8% 95.9%",
    "mutedForeground": "240 3.8% 46.1%",
    "accent": "240 4.8% 95.9%",
    "accentForeground": "240 5.9% 10%",
    "border": "240 5.9% 90%",
    "card": "0 0% 100%",
    "cardForeground": "240 10% 3.9%",
    "destructive": "0 84.2% 60.2%",
    "destructiveForeground": "0 0% 98%",
}

TEMA_PADRAO_ESCURO = {
    "background": "240 10% 3.9%",
    "foreground": "0 0% 98%",
    "primary": "142 76% 36%",
    "primaryForeground": "0 0% 98%",
    "secondary": "45 93% 47%",
    "secondaryForeground": "0 0% 9%",
    "muted": "240 3.7% 15.9%",
    "mutedForeground": "240 5% 64.9%",
    "accent": "240 3.7% 15.9%",
    "accentForeground": "0 0% 98%",
    "border": "240 3.7% 15.9%",
    "card": "240 10% 3.9%",
    "cardForeground": "0 0% 98%",
    "destructive": "0 62.8% 30.6%",
    "destructiveForeground": "0 0% 98%",
}


def cor_padrao_categoria(nome: str, tipo) -> str:
    if nome in PALETA_CATEGORIAS:
        return PALETA_CATEGORIAS[nome]
    return "#4CAF50" if TipoTransacao(tipo) == TipoTransacao.RECEITA else "#FF6B6B"


async def garantir_categorias_globais(session: AsyncSession) -> int:
    existentes = await session.execute(
        select(CategoriaModel.nome, CategoriaModel.tipo).where(CategoriaModel.global_.is_(True))
    )
    chaves = {(nome, TipoTransacao(tipo).value) for nome, tipo in existentes.all()}

    criadas = 0
    for categoria in CATEGORIAS_PADRAO:
        if (categoria["nome"], categoria["tipo"]) in chaves:
            continue
        session.add(CategoriaModel(
            nome=categoria["nome"],
            tipo=TipoTransacao(categoria["tipo"]),
            cor=categoria["cor"],
            icone=categoria["icone"],
            descricao=categoria["descricao"],
            usuario_id=None,
            global_=True,
        ))
        criadas += 1
    await session.commit()
    return criadas


async def garantir_formas_pagamento_globais(session: AsyncSession) -> int:
    existentes = await session.execute(
        select(FormaPagamentoModel.nome).where(FormaPagamentoModel.global_.is_(True))
    )
    nomes = set(existentes.scalars().all())

    criadas = 0
    for forma in FORMAS_PAGAMENTO_PADRAO:
        if forma["nome"] in nomes:
            continue
        session.add(FormaPagamentoModel(**forma, usuario_id=None, global_=True, ativo=True))
        criadas += 1
    await session.commit()
    return criadas


async def resetar_globais(session: AsyncSession) -> Dict[str, int]:
    """Remove categorias/formas globais sem uso e recria as padrão que faltarem."""
    categorias_em_uso = select(TransacaoModel.categoria_id)
    formas_em_uso = select(TransacaoModel.forma_pagamento_id).where(TransacaoModel.forma_pagamento_id.is_not(None))

    categorias = await session.execute(
        delete(CategoriaModel).where(
            CategoriaModel.global_.is_(True),
            CategoriaModel.id.not_in(categorias_em_uso),
        )
    )
    formas = await session.execute(
        delete(FormaPagamentoModel).where(
            FormaPagamentoModel.global_.is_(True),
            FormaPagamentoModel.id.not_in(formas_em_uso),
        )
    )
    await session.commit()

    resultado = {
        "categoriasRemovidas": categorias.rowcount or 0,
        "formasPagamentoRemovidas": formas.rowcount or 0,
        "categoriasCriadas": await garantir_categorias_globais(session),
        "formasPagamentoCriadas": await garantir_formas_pagamento_globais(session),
    }
    logger.info(f"Dados globais resetados: {resultado}")
    return resultado


async def colorizar_categorias_globais(session: AsyncSession) -> int:
    result = await session.execute(select(CategoriaModel).where(CategoriaModel.global_.is_(True)))
    categorias = result.scalars().all()
    for categoria in categorias:
        categoria.cor = cor_padrao_categoria(categoria.nome, categoria.tipo)
    await session.commit()
    return len(categorias)


async def garantir_tema_padrao(session: AsyncSession) -> TemaModel:
    result = await session.execute(select(TemaModel).where(TemaModel.padrao.is_(True)))
    tema = result.scalars().first()
    if tema:
        return tema

    ativos = await session.execute(
        select(func.count(TemaModel.id)).where(TemaModel.ativo_claro.is_(True) | TemaModel.ativo_escuro.is_(True))
    )
    sem_ativos = not ativos.scalar()
    tema = TemaModel(
        nome=NOME_TEMA_PADRAO,
        config_claro=TEMA_PADRAO_CLARO,
        config_escuro=TEMA_PADRAO_ESCURO,
        padrao=True,
        ativo_claro=sem_ativos,
        ativo_escuro=sem_ativos,
    )
    session.add(tema)
    await session.commit()
    await session.refresh(tema)
    return tema


async def garantir_admin_sistema(session: AsyncSession) -> UsuarioModel:
    admin = await buscar_usuario_por_email(session, settings.SYSTEM_USER_ADMIN)
    if admin:
        return admin

    logger.info(f"Criando super administrador inicial {settings.SYSTEM_USER_ADMIN}")
    return await criar_usuario_completo(
        session,
        nome="Administrador",
        email=settings.SYSTEM_USER_ADMIN,
        senha=settings.SYSTEM_USER_PASS,
        tipo_usuario=TipoUsuario.SUPER_ADMIN,
        data_expiracao_assinatura=agora() + timedelta(days=365),
        nome_carteira="Carteira Principal",
    )


async def popular_banco(session: AsyncSession) -> None:
    categorias = await garantir_categorias_globais(session)
    formas = await garantir_formas_pagamento_globais(session)
    await garantir_tema_padrao(session)
    await garantir_admin_sistema(session)
    logger.info(f"Dados iniciais prontos: {categorias} categorias e {formas} formas de pagamento globais criadas")
