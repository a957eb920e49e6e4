import asyncio
import fcntl
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from datetime import datetime
from apscheduler.schedulers.background import BackgroundScheduler
from contextlib import asynccontextmanager
from starlette.middleware.sessions import SessionMiddleware

from api.v1.api import api_router
from api.v1.endpoints.assinatura import verificar_assinaturas_expiradas
from api.v1.endpoints.websocket import websocket_notificacoes
from core.configs import settings
from core.database import Session
from core.notificacoes import GerenciadorConexoes
import models.__all_models
import tempfile
import os
import logging

# Configuração do logger
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

LOCK_DIR = tempfile.gettempdir()

# Garantir que o diretório existe com permissões restritas
os.makedirs(LOCK_DIR, mode=0o700, exist_ok=True)

def acquire_file_lock():
    try:
        # Criar um arquivo temporário no diretório dedicado
        lock_file = tempfile.NamedTemporaryFile(dir=LOCK_DIR, delete=False)
        fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        logger.info(f"Lock adquirido com sucesso no arquivo: {lock_file.name}")
        return lock_file
    except IOError:
        logger.info("Outro processo já está executando a tarefa.")
        return None

def release_file_lock(lock_file):
    if lock_file:
        fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
        lock_file.close()
        os.unlink(lock_file.name)
        logger.info(f"Lock liberado e arquivo removido: {lock_file.name}")


async def rotina_assinaturas():
    async with Session() as session:
        await verificar_assinaturas_expiradas(session)


def executar_verificacao_assinaturas(loop):
    lock_file = acquire_file_lock()
    if lock_file:
        try:
            futuro = asyncio.run_coroutine_threadsafe(rotina_assinaturas(), loop)
            futuro.result(timeout=300)
        except Exception as e:
            logger.exception(f"Erro na verificação de assinaturas: {e}")
        finally:
            release_file_lock(lock_file)


def executar_verificacao_conexoes(gerenciador: GerenciadorConexoes, loop):
    try:
        futuro = asyncio.run_coroutine_threadsafe(gerenciador.verificar_conexoes(), loop)
        futuro.result(timeout=settings.WS_PING_INTERVAL)
    except Exception as e:
        logger.exception(f"Erro na verificação das conexões WebSocket: {e}")


def agendar_tarefas(scheduler: BackgroundScheduler, gerenciador: GerenciadorConexoes, loop, hora: int = 0, minuto: int = 0):
    scheduler.add_job(
        executar_verificacao_assinaturas,
        'cron',
        hour=hora,
        minute=minuto,
        args=[loop],
        id="verificacao_assinaturas",
        replace_existing=True
    )
    scheduler.add_job(
        executar_verificacao_conexoes,
        'interval',
        seconds=settings.WS_PING_INTERVAL,
        args=[gerenciador, loop],
        id="verificacao_conexoes",
        replace_existing=True
    )
    current_time = datetime.now().strftime('%H:%M:%S')
    logger.info(f"Verificação de assinaturas agendada para {hora:02d}:{minuto:02d}. Hora atual {current_time}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    loop = asyncio.get_running_loop()
    gerenciador = GerenciadorConexoes(settings.WS_PING_INTERVAL, settings.WS_TIMEOUT)
    app.state.gerenciador_conexoes = gerenciador

    scheduler = BackgroundScheduler()
    scheduler.start()
    agendar_tarefas(scheduler, gerenciador, loop)
    try:
        yield
    finally:
        scheduler.shutdown()


app = FastAPI(title='Dindão Finanças', lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Dados inválidos", "errors": jsonable_encoder(exc.errors())},
    )


app.include_router(api_router, prefix=settings.API_STR)
app.add_api_websocket_route('/ws', websocket_notificacoes)

app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET,
    max_age=settings.SESSION_MAX_AGE,
    same_site="lax",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origem.strip() for origem in settings.CORS_ORIGINS.split(',') if origem.strip()],
    allow_credentials=settings.CORS_ORIGINS != "*",
    allow_methods=["GET", "POST", "OPTIONS", "DELETE", "PUT", "PATCH"],
    allow_headers=["*"],
)

if __name__ == '__main__':
    import uvicorn
    uvicorn.run("main:app", host="localhost", port=9000, log_level="info", reload=True)
