from sqlalchemy import Column, String, Integer, ForeignKey, Date, TIMESTAMP, DECIMAL, Enum as SqlEnum, func
from sqlalchemy.orm import relationship
from core.configs import settings
from models.enums import TipoTransacao, StatusTransacao


class TransacaoModel(settings.DBBaseModel):
    __tablename__ = "TRANSACAO"

    id = Column(Integer, primary_key=True)
    carteira_id = Column(Integer, ForeignKey("CARTEIRA.id", ondelete="CASCADE"), nullable=False, index=True)
    categoria_id = Column(Integer, ForeignKey("CATEGORIA.id"), nullable=False, index=True)
    forma_pagamento_id = Column(Integer, ForeignKey("FORMA_PAGAMENTO.id"), nullable=True)
    tipo = Column(SqlEnum(TipoTransacao, values_callable=lambda e: [i.value for i in e]), nullable=False)
    valor = Column(DECIMAL(12, 2), nullable=False)
    data_transacao = Column(Date, nullable=False)
    data_registro = Column(TIMESTAMP(timezone=True), server_default=func.now())
    descricao = Column(String(255), nullable=False)
    metodo_pagamento = Column(String(100))
    status = Column(SqlEnum(StatusTransacao, values_callable=lambda e: [i.value for i in e]), nullable=False, default=StatusTransacao.PENDENTE)

    carteira = relationship("CarteiraModel", back_populates="transacoes")
