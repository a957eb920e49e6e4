import secrets

from passlib.context import CryptContext

pwd_context = CryptContext(schemes='bcrypt', deprecated='auto')

PREFIXO_TOKEN_API = "fin_"

def check_password(senha: str, hash_senha: str) -> bool:

    return pwd_context.verify(senha, hash_senha)


def generate_hash(senha: str)-> str:

    return pwd_context.hash(senha)


def generate_api_token() -> str:
    # fin_ + 64 caracteres hexadecimais
    return PREFIXO_TOKEN_API + secrets.token_hex(32)


def mascarar_token(token: str) -> str:
    return f"{token[:10]}...{token[-4:]}"
