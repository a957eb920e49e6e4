from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, Text, TIMESTAMP, Index, func
from sqlalchemy.orm import relationship
from core.configs import settings


class ApiTokenModel(settings.DBBaseModel):
    __tablename__ = "API_TOKEN"

    id = Column(Integer, primary_key=True)
    usuario_id = Column(Integer, ForeignKey("USUARIO.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(100), nullable=False, unique=True)
    nome = Column(String(100), nullable=False)
    descricao = Column(Text)
    data_criacao = Column(TIMESTAMP(timezone=True), server_default=func.now())
    data_expiracao = Column(TIMESTAMP(timezone=True))
    ativo = Column(Boolean, nullable=False, default=True)
    master = Column(Boolean, nullable=False, default=False)
    rotacionavel = Column(Boolean, nullable=False, default=False)

    usuario = relationship("UsuarioModel", back_populates="api_tokens")

    __table_args__ = (
        # apenas um MasterToken por usuário
        Index(
            'unique_master_token_usuario', 'usuario_id', unique=True,
            postgresql_where=master.is_(True), sqlite_where=master.is_(True),
        ),
    )
