from sqlalchemy.orm import sessionmaker
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession
from sqlalchemy.pool import StaticPool

from core.configs import settings


def criar_engine(url: str) -> AsyncEngine:
    if url.startswith("sqlite"):
        # banco em memória compartilhado entre conexões (testes e desenvolvimento local)
        return create_async_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_async_engine(
        url,
        pool_pre_ping=True,        # Verifica se a conexão está ativa antes de usá-la
        pool_recycle=3600,        # Recicla conexões após 3600 segundos (1 hora)
    )


engine: AsyncEngine = criar_engine(settings.DB_URL)


Session: AsyncSession = sessionmaker(
    autocommit= False,
    autoflush= False,
    expire_on_commit= False,
    class_= AsyncSession,
    bind = engine,
)
