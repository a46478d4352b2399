"""
Stockage temporaire des fichiers uploadés pendant le remplissage du formulaire.

Les fichiers sont écrits sous TEMP_UPLOAD_DIR/<upload_id>/ avant le paiement, puis
relus et supprimés par le fulfillment une fois la commande créée.
Seuls les chemins situés sous TEMP_UPLOAD_DIR sont lus ou supprimés: les chemins
proviennent des métadonnées, donc du client.
"""
import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Set

from backend.config import TEMP_UPLOAD_DIR

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w\-.]+")


@dataclass(frozen=True)
class StagedAsset:
    field_name: str
    file_path: str


# module backend.checkout.temp_assets
def sanitize_file_name(name: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", name or "").strip("._")
    return cleaned or "file"

def _root() -> Path:
    return Path(TEMP_UPLOAD_DIR).resolve()

def is_staged_path(path: str) -> bool:
    """True si le chemin pointe sous le répertoire des uploads temporaires."""
    if not path:
        return False
    try:
        Path(path).resolve().relative_to(_root())
        return True
    except (ValueError, OSError):
        return False

def stage(content: bytes, field_name: str, *, filename: Optional[str] = None, upload_id: Optional[str] = None) -> StagedAsset:
    """
    Écrit les octets uploadés dans un sous-répertoire propre à la session de checkout.
    - field_name: nom logique du champ (ex: 'dj_0', 'host_1', 'sponsor_2', 'venue_logo')
    - upload_id: préfixe de session; généré si absent
    Retour: StagedAsset(field_name, file_path)
    """
    directory = _root() / sanitize_file_name(upload_id or f"checkout_{uuid.uuid4().hex}")
    directory.mkdir(parents=True, exist_ok=True)
    name = f"{sanitize_file_name(field_name)}_{uuid.uuid4().hex[:8]}_{sanitize_file_name(filename or 'upload')}"
    target = directory / name
    target.write_bytes(content)
    logger.info("checkout.temp_assets.stage field=%s path=%s size=%s", field_name, target, len(content))
    return StagedAsset(field_name=field_name, file_path=str(target))

def read_staged(path: str) -> Optional[bytes]:
    """Relit un fichier stagé. Retourne None si absent ou hors du répertoire temporaire."""
    if not is_staged_path(path):
        logger.warning("checkout.temp_assets.read_staged refused path=%s", path)
        return None
    try:
        return Path(path).read_bytes()
    except OSError:
        logger.warning("checkout.temp_assets.read_staged failed path=%s", path)
        return None

def cleanup(paths: Iterable[str]) -> None:
    """
    Suppression best-effort des fichiers stagés, puis des répertoires parents devenus vides.
    - Un fichier déjà supprimé n'est pas une erreur (idempotent: refresh/retour navigateur).
    - Ne lève jamais.
    """
    parents: Set[Path] = set()
    for path in paths or []:
        if not is_staged_path(path):
            logger.warning("checkout.temp_assets.cleanup skipped path=%s", path)
            continue
        file_path = Path(path)
        try:
            file_path.unlink(missing_ok=True)
        except OSError:
            logger.debug("checkout.temp_assets.cleanup unlink failed path=%s", path)
        parents.add(file_path.parent)

    root = _root()
    for parent in parents:
        if parent.resolve() == root:
            continue
        try:
            parent.rmdir()
        except OSError:
            # Répertoire non vide ou déjà supprimé
            pass
