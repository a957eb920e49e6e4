"""Regras de autorização baseadas no papel do usuário (TipoUsuario)."""
from typing import Optional

from fastapi import HTTPException, status

from models.enums import TipoUsuario
from models.usuario_model import UsuarioModel


def papel(usuario: Optional[UsuarioModel]) -> Optional[TipoUsuario]:
    if usuario is None or usuario.tipo_usuario is None:
        return None
    return TipoUsuario(usuario.tipo_usuario)


def eh_super_admin(usuario: Optional[UsuarioModel]) -> bool:
    return papel(usuario) == TipoUsuario.SUPER_ADMIN


def pode_ser_desativado(alvo: UsuarioModel) -> bool:
    return not eh_super_admin(alvo)


def validar_personificacao(admin: UsuarioModel, alvo: Optional[UsuarioModel]) -> UsuarioModel:
    if alvo is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuário não encontrado")
    if not alvo.ativo:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Não é possível personificar um usuário inativo"
        )
    if eh_super_admin(alvo):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Não é possível personificar outro super administrador"
        )
    if alvo.id == admin.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Não é possível personificar a si mesmo"
        )
    return alvo


def exigir_super_admin(usuario: Optional[UsuarioModel]) -> UsuarioModel:
    if not eh_super_admin(usuario):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Acesso negado: requer privilégios de super administrador"
        )
    return usuario
