import argparse
import logging

from core.configs import settings
from core.database import engine, Session
from core.seed import popular_banco

# Ativa o log SQL do SQLAlchemy para ver os comandos SQL que estão sendo executados
logging.basicConfig(level=logging.INFO)
logging.getLogger('sqlalchemy.engine').setLevel(logging.INFO)
logger = logging.getLogger(__name__)


async def create_tables(recriar: bool = False) -> None:
    import models.__all_models

    async with engine.begin() as conn:
        if recriar:
            logger.info('Excluindo as tabelas do banco de dados...')
            await conn.run_sync(settings.DBBaseModel.metadata.drop_all)
        logger.info('Criando as tabelas no banco de dados...')
        await conn.run_sync(settings.DBBaseModel.metadata.create_all)

    async with Session() as session:
        await popular_banco(session)

    logger.info('Tabelas criadas com sucesso')


if __name__ == '__main__':
    import asyncio

    parser = argparse.ArgumentParser(description="Cria as tabelas e os dados iniciais")
    parser.add_argument("--recriar", action="store_true", help="exclui as tabelas existentes antes de criar")
    args = parser.parse_args()
    asyncio.run(create_tables(recriar=args.recriar))
