from sqlalchemy import Column, Integer, Boolean, ForeignKey, TIMESTAMP, func
from core.configs import settings


class SessaoAdminModel(settings.DBBaseModel):
    """Registro de personificação: um super admin atuando como outro usuário."""
    __tablename__ = "SESSAO_ADMIN"

    id = Column(Integer, primary_key=True)
    super_admin_id = Column(Integer, ForeignKey("USUARIO.id", ondelete="CASCADE"), nullable=False)
    target_user_id = Column(Integer, ForeignKey("USUARIO.id", ondelete="CASCADE"), nullable=False, index=True)
    data_inicio = Column(TIMESTAMP(timezone=True), server_default=func.now())
    data_fim = Column(TIMESTAMP(timezone=True))
    ativo = Column(Boolean, nullable=False, default=True)
