from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, TIMESTAMP, JSON, func
from core.configs import settings


class TemaModel(settings.DBBaseModel):
    __tablename__ = "TEMA"

    id = Column(Integer, primary_key=True)
    nome = Column(String(100), nullable=False)
    config_claro = Column(JSON, nullable=False)
    config_escuro = Column(JSON, nullable=False)
    padrao = Column(Boolean, nullable=False, default=False)
    ativo_claro = Column(Boolean, nullable=False, default=False)
    ativo_escuro = Column(Boolean, nullable=False, default=False)
    usuario_id = Column(Integer, ForeignKey("USUARIO.id", ondelete="SET NULL"), nullable=True)
    data_criacao = Column(TIMESTAMP(timezone=True), server_default=func.now())
    data_atualizacao = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())
