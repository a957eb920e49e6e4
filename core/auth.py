from datetime import datetime, timedelta
from typing import Optional

from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from pydantic import EmailStr
from pytz import timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.configs import settings
from core.security import check_password
from models.usuario_model import UsuarioModel


oauth2_schema = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_STR}/auth/login",
    auto_error=False,
)


async def auth(email: EmailStr, senha: str, db: AsyncSession) -> Optional[UsuarioModel]:
    query = select(UsuarioModel).filter(UsuarioModel.email == email.lower())
    result = await db.execute(query)
    usuario: UsuarioModel = result.scalars().unique().one_or_none()
    if not usuario:
        return None
    if not check_password(senha, usuario.senha):
        return None

    return usuario


def _generate_token(tipo_token: str, tempo_vida: timedelta, sub: str) -> str:
    payload = {}
    sp = timezone('America/Sao_Paulo')
    expira = datetime.now(tz=sp) + tempo_vida

    payload["type"] = tipo_token
    payload["exp"] = expira
    payload["iat"] = datetime.now(tz=sp)
    payload["sub"] = str(sub)

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.ALGORITHM)


def generate_token_access(sub: str) -> str:
    return _generate_token(
        tipo_token='access_token',
        tempo_vida=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        sub=sub
    )


def decoded_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        raise ValueError(f"Token inválido ou expirado: {str(e)}")


def usuario_id_do_token(token: str) -> Optional[int]:
    """Id do usuário de um access_token válido, ou None."""
    try:
        payload = decoded_token(token)
    except ValueError:
        return None
    if payload.get("type") != "access_token":
        return None
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
