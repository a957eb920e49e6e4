import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, status, Body, Depends, HTTPException
from pydantic import ValidationError
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from core.deps import ContextoAutenticacao, get_session, require_super_admin
from core.seed import NOME_TEMA_PADRAO, TEMA_PADRAO_CLARO, TEMA_PADRAO_ESCURO
from core.utils import handle_db_exceptions
from models.tema_model import TemaModel
from schemas.tema_schema import TemaSchema, TemaSchemaUpdate

logger = logging.getLogger(__name__)

router = APIRouter()

MODOS_ATIVACAO = {
    "activate": ("ativo_claro", "ativo_escuro"),
    "activate-light": ("ativo_claro",),
    "activate-dark": ("ativo_escuro",),
}


def tema_para_dict(tema: TemaModel) -> Dict[str, Any]:
    return {
        "id": tema.id,
        "name": tema.nome,
        "lightConfig": tema.config_claro,
        "darkConfig": tema.config_escuro,
        "isDefault": tema.padrao,
        "isActiveLight": tema.ativo_claro,
        "isActiveDark": tema.ativo_escuro,
        "createdAt": tema.data_criacao,
        "updatedAt": tema.data_atualizacao,
    }


def tema_embutido() -> Dict[str, Any]:
    return {
        "id": None,
        "name": NOME_TEMA_PADRAO,
        "lightConfig": TEMA_PADRAO_CLARO,
        "darkConfig": TEMA_PADRAO_ESCURO,
        "isDefault": True,
        "isActiveLight": True,
        "isActiveDark": True,
    }


def _validar(schema, dados: Dict[str, Any]):
    try:
        return schema.model_validate(dados)
    except ValidationError as e:
        logger.warning(f"Configurações de tema inválidas: {e.error_count()} erro(s)")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Configurações de tema inválidas")


async def _buscar_tema(session: AsyncSession, tema_id: int) -> TemaModel:
    result = await session.execute(select(TemaModel).where(TemaModel.id == tema_id))
    tema = result.scalars().one_or_none()
    if not tema:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tema não encontrado")
    return tema


async def _tema_ativo(session: AsyncSession, coluna) -> Optional[TemaModel]:
    result = await session.execute(select(TemaModel).where(coluna.is_(True)).order_by(TemaModel.id))
    tema = result.scalars().first()
    if tema is None:
        result = await session.execute(select(TemaModel).where(TemaModel.padrao.is_(True)))
        tema = result.scalars().first()
    return tema


async def _desmarcar_padrao(session: AsyncSession, exceto_id: Optional[int] = None) -> None:
    query = update(TemaModel).where(TemaModel.padrao.is_(True))
    if exceto_id is not None:
        query = query.where(TemaModel.id != exceto_id)
    await session.execute(query.values(padrao=False))


@router.get('/active/current')
async def get_tema_atual(db: AsyncSession = Depends(get_session)):
    async with db as session:
        claro = await _tema_ativo(session, TemaModel.ativo_claro)
        escuro = await _tema_ativo(session, TemaModel.ativo_escuro)

    if claro is None and escuro is None:
        return {"success": True, "data": tema_embutido(), "message": "Tema padrão do sistema"}

    base = tema_para_dict(claro or escuro)
    base["lightConfig"] = claro.config_claro if claro else TEMA_PADRAO_CLARO
    base["darkConfig"] = escuro.config_escuro if escuro else TEMA_PADRAO_ESCURO
    return {"success": True, "data": base, "message": "Tema ativo"}


@router.get('/active/light')
async def get_tema_claro(db: AsyncSession = Depends(get_session)):
    async with db as session:
        tema = await _tema_ativo(session, TemaModel.ativo_claro)
    config = tema.config_claro if tema else TEMA_PADRAO_CLARO
    return {"success": True, "data": {"id": tema.id if tema else None, "config": config}, "message": "Tema claro ativo"}


@router.get('/active/dark')
async def get_tema_escuro(db: AsyncSession = Depends(get_session)):
    async with db as session:
        tema = await _tema_ativo(session, TemaModel.ativo_escuro)
    config = tema.config_escuro if tema else TEMA_PADRAO_ESCURO
    return {"success": True, "data": {"id": tema.id if tema else None, "config": config}, "message": "Tema escuro ativo"}


@router.get('')
async def get_temas(
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    async with db as session:
        result = await session.execute(select(TemaModel).order_by(TemaModel.padrao.desc(), TemaModel.nome))
        temas = result.scalars().all()
    return {"success": True, "data": [tema_para_dict(t) for t in temas], "message": f"{len(temas)} tema(s) encontrado(s)"}


@router.get('/{tema_id}')
async def get_tema(
    tema_id: int,
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    async with db as session:
        tema = await _buscar_tema(session, tema_id)
    return {"success": True, "data": tema_para_dict(tema), "message": "Tema encontrado"}


@router.post('', status_code=status.HTTP_201_CREATED)
async def post_tema(
    dados: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    tema_dados: TemaSchema = _validar(TemaSchema, dados)
    async with db as session:
        try:
            if tema_dados.isDefault:
                await _desmarcar_padrao(session)
            tema = TemaModel(
                nome=tema_dados.name,
                config_claro=tema_dados.lightConfig.model_dump(),
                config_escuro=tema_dados.darkConfig.model_dump(),
                padrao=tema_dados.isDefault,
                ativo_claro=False,
                ativo_escuro=False,
                usuario_id=contexto.usuario_autorizacao.id,
            )
            session.add(tema)
            await session.commit()
            await session.refresh(tema)
        except Exception as e:
            await handle_db_exceptions(session, e)

    logger.info(f"Tema {tema.id} criado pelo admin {contexto.usuario_autorizacao.id}")
    return {"success": True, "data": tema_para_dict(tema), "message": "Tema criado com sucesso"}


@router.put('/{tema_id}')
async def put_tema(
    tema_id: int,
    dados: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    tema_dados: TemaSchemaUpdate = _validar(TemaSchemaUpdate, dados)
    async with db as session:
        tema = await _buscar_tema(session, tema_id)
        try:
            if tema_dados.name is not None:
                tema.nome = tema_dados.name
            if tema_dados.lightConfig is not None:
                tema.config_claro = tema_dados.lightConfig.model_dump()
            if tema_dados.darkConfig is not None:
                tema.config_escuro = tema_dados.darkConfig.model_dump()
            if tema_dados.isDefault is not None:
                if tema_dados.isDefault:
                    await _desmarcar_padrao(session, exceto_id=tema.id)
                tema.padrao = tema_dados.isDefault
            await session.commit()
            await session.refresh(tema)
        except Exception as e:
            await handle_db_exceptions(session, e)

    return {"success": True, "data": tema_para_dict(tema), "message": "Tema atualizado com sucesso"}


@router.delete('/{tema_id}')
async def delete_tema(
    tema_id: int,
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    async with db as session:
        tema = await _buscar_tema(session, tema_id)
        if tema.padrao:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Não é possível deletar o tema padrão")
        try:
            await session.delete(tema)
            await session.commit()
        except Exception as e:
            await handle_db_exceptions(session, e)

    logger.info(f"Tema {tema_id} removido pelo admin {contexto.usuario_autorizacao.id}")
    return {"success": True, "data": None, "message": "Tema deletado com sucesso"}


async def _ativar(session: AsyncSession, tema_id: int, colunas) -> TemaModel:
    tema = await _buscar_tema(session, tema_id)
    for coluna in colunas:
        # apenas um tema ativo por modo
        await session.execute(
            update(TemaModel).where(TemaModel.id != tema.id).values({coluna: False})
        )
        setattr(tema, coluna, True)
    await session.commit()
    await session.refresh(tema)
    return tema


@router.post('/{tema_id}/{modo}')
async def ativar_tema(
    tema_id: int,
    modo: str,
    db: AsyncSession = Depends(get_session),
    contexto: ContextoAutenticacao = Depends(require_super_admin),
):
    colunas = MODOS_ATIVACAO.get(modo)
    if colunas is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    async with db as session:
        try:
            tema = await _ativar(session, tema_id, colunas)
        except HTTPException:
            raise
        except Exception as e:
            await handle_db_exceptions(session, e)

    return {"success": True, "data": tema_para_dict(tema), "message": "Tema ativado com sucesso"}
