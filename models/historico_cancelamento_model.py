from sqlalchemy import Column, Integer, ForeignKey, Text, TIMESTAMP, Enum as SqlEnum, func
from sqlalchemy.orm import relationship
from core.configs import settings
from models.enums import TipoCancelamento


class HistoricoCancelamentoModel(settings.DBBaseModel):
    __tablename__ = "HISTORICO_CANCELAMENTO"

    id = Column(Integer, primary_key=True)
    usuario_id = Column(Integer, ForeignKey("USUARIO.id", ondelete="CASCADE"), nullable=False, index=True)
    data_cancelamento = Column(TIMESTAMP(timezone=True), nullable=False)
    motivo_cancelamento = Column(Text)
    tipo_cancelamento = Column(SqlEnum(TipoCancelamento, values_callable=lambda e: [i.value for i in e]), nullable=False, default=TipoCancelamento.VOLUNTARIO)
    observacoes = Column(Text)
    reativado_em = Column(TIMESTAMP(timezone=True))
    data_criacao = Column(TIMESTAMP(timezone=True), server_default=func.now())

    usuario = relationship("UsuarioModel", back_populates="historico_cancelamentos")
