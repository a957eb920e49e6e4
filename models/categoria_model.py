from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, Text, UniqueConstraint, Enum as SqlEnum
from sqlalchemy.orm import relationship
from core.configs import settings
from models.enums import TipoTransacao


class CategoriaModel(settings.DBBaseModel):
    __tablename__ = "CATEGORIA"

    id = Column(Integer, primary_key=True)
    nome = Column(String(100), nullable=False)
    tipo = Column(SqlEnum(TipoTransacao, values_callable=lambda e: [i.value for i in e]), nullable=False, default=TipoTransacao.DESPESA)
    cor = Column(String(20))
    icone = Column(String(50))
    descricao = Column(Text)
    usuario_id = Column(Integer, ForeignKey("USUARIO.id", ondelete="CASCADE"), nullable=True, index=True)
    global_ = Column("global", Boolean, nullable=False, default=False)

    usuario = relationship("UsuarioModel", back_populates="categorias")

    __table_args__ = (
        UniqueConstraint('usuario_id', 'nome', 'tipo', name='unique_nome_tipo_categoria'),
    )
