from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, Text, TIMESTAMP, func
from sqlalchemy.orm import relationship
from core.configs import settings


class LembreteModel(settings.DBBaseModel):
    __tablename__ = "LEMBRETE"

    id = Column(Integer, primary_key=True)
    usuario_id = Column(Integer, ForeignKey("USUARIO.id", ondelete="CASCADE"), nullable=False, index=True)
    titulo = Column(String(255), nullable=False)
    descricao = Column(Text)
    data_lembrete = Column(TIMESTAMP, nullable=False)
    data_criacao = Column(TIMESTAMP, server_default=func.now())
    concluido = Column(Boolean, nullable=False, default=False)

    usuario = relationship("UsuarioModel", back_populates="lembretes")
