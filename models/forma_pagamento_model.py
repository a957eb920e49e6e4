from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, Text, TIMESTAMP, func
from sqlalchemy.orm import relationship
from core.configs import settings


class FormaPagamentoModel(settings.DBBaseModel):
    __tablename__ = "FORMA_PAGAMENTO"

    id = Column(Integer, primary_key=True)
    nome = Column(String(100), nullable=False)
    descricao = Column(Text)
    icone = Column(String(50))
    cor = Column(String(20))
    usuario_id = Column(Integer, ForeignKey("USUARIO.id", ondelete="CASCADE"), nullable=True, index=True)
    global_ = Column("global", Boolean, nullable=False, default=False)
    ativo = Column(Boolean, nullable=False, default=True)
    data_criacao = Column(TIMESTAMP(timezone=True), server_default=func.now())

    usuario = relationship("UsuarioModel", back_populates="formas_pagamento")
