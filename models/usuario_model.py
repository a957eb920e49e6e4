from sqlalchemy import Column, String, Integer, Boolean, TIMESTAMP, Text, Enum as SqlEnum, func
from sqlalchemy.orm import relationship
from core.configs import settings
from models.enums import TipoUsuario, StatusAssinatura


class UsuarioModel(settings.DBBaseModel):
    __tablename__ = "USUARIO"

    id = Column(Integer, primary_key=True)
    remotejid = Column(String(50))
    nome = Column(String(100), nullable=False)
    email = Column(String(100), nullable=False, unique=True)
    telefone = Column(String(20))
    senha = Column(String(500), nullable=False)
    tipo_usuario = Column(SqlEnum(TipoUsuario, values_callable=lambda e: [i.value for i in e]), nullable=False, default=TipoUsuario.NORMAL)
    ativo = Column(Boolean, nullable=False, default=True)
    data_cadastro = Column(TIMESTAMP(timezone=True), server_default=func.now())
    ultimo_acesso = Column(TIMESTAMP(timezone=True))

    data_cancelamento = Column(TIMESTAMP(timezone=True))
    motivo_cancelamento = Column(Text)
    data_expiracao_assinatura = Column(TIMESTAMP(timezone=True))
    status_assinatura = Column(SqlEnum(StatusAssinatura, values_callable=lambda e: [i.value for i in e]), nullable=False, default=StatusAssinatura.ATIVA)

    carteiras = relationship("CarteiraModel", cascade="all, delete-orphan", back_populates="usuario", passive_deletes=True)
    categorias = relationship("CategoriaModel", cascade="all, delete-orphan", back_populates="usuario", passive_deletes=True)
    formas_pagamento = relationship("FormaPagamentoModel", cascade="all, delete-orphan", back_populates="usuario", passive_deletes=True)
    api_tokens = relationship("ApiTokenModel", cascade="all, delete-orphan", back_populates="usuario", passive_deletes=True)
    lembretes = relationship("LembreteModel", cascade="all, delete-orphan", back_populates="usuario", passive_deletes=True)
    historico_cancelamentos = relationship("HistoricoCancelamentoModel", cascade="all, delete-orphan", back_populates="usuario", passive_deletes=True)
