from sqlalchemy import Column, String, Integer, ForeignKey, TIMESTAMP, Text, DECIMAL, func
from sqlalchemy.orm import relationship
from core.configs import settings


class CarteiraModel(settings.DBBaseModel):
    __tablename__ = "CARTEIRA"

    id = Column(Integer, primary_key=True)
    usuario_id = Column(Integer, ForeignKey("USUARIO.id", ondelete="CASCADE"), nullable=False, index=True)
    nome = Column(String(100), nullable=False)
    descricao = Column(Text)
    # valor em cache, o saldo exibido é sempre recalculado a partir das transações
    saldo_atual = Column(DECIMAL(12, 2), nullable=False, default=0)
    data_criacao = Column(TIMESTAMP(timezone=True), server_default=func.now())

    usuario = relationship("UsuarioModel", back_populates="carteiras")
    transacoes = relationship("TransacaoModel", cascade="all, delete-orphan", back_populates="carteira", passive_deletes=True)
