"""
Normalisation des lignes de commande.

Les lignes arrivent avec des noms de champs variables selon l'écran d'origine
(flyer_id / flyer_is, email / userEmail / user_email, total_price / subtotal, ...)
et des personnes tantôt objet, tantôt tableau. normalize_item() produit toujours
un OrderLineItem canonique, sans effet de bord et sans lever d'exception.
"""
import json
import math
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, RootModel

# Priorité des alias historiques: le premier non vide l'emporte.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "flyer_id": ("flyer_id", "flyer_is", "flyerId"),
    "category_id": ("category_id", "categoryId"),
    "user_id": ("user_id", "userId", "web_user_id"),
    "email": ("email", "userEmail", "user_email"),
    "event_title": ("event_title", "eventTitle", "mainTitle"),
    "total_price": ("total_price", " total_price", "totalPrice", "subtotal"),
    "subtotal": ("subtotal", "total_price", " total_price", "totalPrice"),
    "image_url": ("image_url", "imageUrl", "image"),
    "venue_logo_url": ("venue_logo_url", "venue_logo"),
}

FIELD_DEFAULTS: Dict[str, Any] = {
    "flyer_id": "1",
    "category_id": "1",
    "user_id": "",
    "email": "",
    "event_title": "",
    "venue_logo_url": "",
}

FLAG_DEFAULTS: Dict[str, bool] = {
    "story_size_version": False,
    "custom_flyer": False,
    "animated_flyer": False,
    "instagram_post_size": True,
}

DEFAULT_DELIVERY_TIME = "24 hours"
MAX_SPONSORS = 3

_NOT_PRICE_CHARS = re.compile(r"[^0-9.]")


class Person(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    image_url: Optional[str] = None

    def to_payload(self) -> Dict[str, str]:
        data = {"name": self.name}
        if self.image_url:
            data["image_url"] = self.image_url
        return data


class PersonList(RootModel[List[Person]]):
    """Liste de personnes (DJs, hosts, sponsors), construite uniquement via coerce()."""

    model_config = ConfigDict(frozen=True)

    @classmethod
    def coerce(cls, value: Any) -> "PersonList":
        if value is None or value == "":
            return cls([])
        entries = value if isinstance(value, (list, tuple)) else [value]
        return cls([p for p in (_to_person(e) for e in entries) if p is not None])

    def __iter__(self):
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)

    def first(self) -> Person:
        return self.root[0] if self.root else Person()

    def to_payload(self) -> List[Dict[str, str]]:
        return [p.to_payload() for p in self.root]

    def to_json(self) -> str:
        return json.dumps(self.to_payload())


class OrderLineItem(BaseModel):
    """Requête de commande canonique (une ligne du panier = une commande)."""

    model_config = ConfigDict(frozen=True)

    presenting: str = ""
    event_title: str = ""
    event_date: str = ""
    flyer_info: str = ""
    address_phone: str = ""
    djs: PersonList = PersonList([])
    host: PersonList = PersonList([])
    sponsors: PersonList = PersonList([])
    story_size_version: bool = False
    custom_flyer: bool = False
    animated_flyer: bool = False
    instagram_post_size: bool = True
    delivery_time: str = DEFAULT_DELIVERY_TIME
    custom_notes: str = ""
    total_price: float = 0.0
    subtotal: float = 0.0
    image_url: Optional[str] = None
    temp_files: Dict[str, str] = {}
    flyer_id: str = "1"
    category_id: str = "1"
    user_id: str = ""
    email: str = ""
    venue_text: str = ""
    venue_logo_url: str = ""

    def to_payload(self) -> Dict[str, Any]:
        """Représentation JSON stockée dans les métadonnées Stripe."""
        data = self.model_dump(exclude={"djs", "host", "sponsors"})
        data["djs"] = self.djs.to_payload()
        data["host"] = self.host.to_payload()
        data["sponsors"] = self.sponsors.to_payload()
        return data


# module backend.checkout.normalizer
def is_absolute_url(value: Any) -> bool:
    return isinstance(value, str) and value.lower().startswith(("http://", "https://"))

def parse_price(value: Any) -> float:
    """
    Prix -> float positif ou nul.
    - nombre: tel quel (négatif, NaN, infini -> 0)
    - chaîne: ne garde que chiffres et '.', puis float; invalide -> 0
    - autre (None, bool, objet): 0
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = _NOT_PRICE_CHARS.sub("", value)
        try:
            number = float(cleaned) if cleaned else 0.0
        except ValueError:
            return 0.0
    else:
        return 0.0
    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0.0
    return number

def parse_flag(value: Any, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    return default

def normalize_date(value: Any) -> str:
    text = _text(value)
    if "T" in text:
        return text.split("T", 1)[0]
    return text

def first_non_empty(raw: Dict[str, Any], aliases: Iterable[str]) -> Any:
    for key in aliases:
        value = raw.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None

def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)

def _to_person(entry: Any) -> Optional[Person]:
    if entry is None:
        return None
    if isinstance(entry, str):
        return Person(name=entry)
    if isinstance(entry, dict):
        name = entry.get("name")
        # Objet enveloppé: {"name": {"name": "..."}}
        if isinstance(name, dict):
            name = name.get("name")
        image = entry.get("image_url") or entry.get("image")
        return Person(name=_text(name), image_url=image if is_absolute_url(image) else None)
    return None

def _temp_files(value: Any) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): v for k, v in value.items() if isinstance(v, str) and v}

def _resolve(raw: Dict[str, Any], field: str, defaults: Dict[str, Any]) -> Any:
    value = first_non_empty(raw, FIELD_ALIASES[field])
    if value is None:
        value = defaults.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        value = FIELD_DEFAULTS.get(field)
    return value

def normalize_item(raw: Any, defaults: Optional[Dict[str, Any]] = None) -> OrderLineItem:
    """
    Construit un OrderLineItem canonique à partir d'une ligne brute.
    - defaults: valeurs de repli au niveau du payload (ex: {"user_id": ..., "email": ...})
    Chaque règle est appliquée indépendamment (prix, identifiants, date, personnes, drapeaux).
    """
    if not isinstance(raw, dict):
        raw = {}
    defaults = defaults or {}

    image_url = _resolve(raw, "image_url", defaults)
    flags = {name: parse_flag(raw.get(name), default) for name, default in FLAG_DEFAULTS.items()}

    return OrderLineItem(
        presenting=_text(raw.get("presenting")),
        event_title=_text(_resolve(raw, "event_title", defaults)),
        event_date=normalize_date(raw.get("event_date")),
        flyer_info=_text(raw.get("flyer_info")),
        address_phone=_text(raw.get("address_phone")),
        djs=PersonList.coerce(raw.get("djs")),
        host=PersonList.coerce(raw.get("host")),
        sponsors=PersonList(PersonList.coerce(raw.get("sponsors")).root[:MAX_SPONSORS]),
        delivery_time=_text(raw.get("delivery_time")) or DEFAULT_DELIVERY_TIME,
        custom_notes=_text(raw.get("custom_notes")),
        total_price=parse_price(_resolve(raw, "total_price", defaults)),
        subtotal=parse_price(_resolve(raw, "subtotal", defaults)),
        image_url=image_url if is_absolute_url(image_url) else None,
        temp_files=_temp_files(raw.get("temp_files")),
        flyer_id=_text(_resolve(raw, "flyer_id", defaults)),
        category_id=_text(_resolve(raw, "category_id", defaults)),
        user_id=_text(_resolve(raw, "user_id", defaults)),
        email=_text(_resolve(raw, "email", defaults)),
        venue_text=_text(raw.get("venue_text")),
        venue_logo_url=_text(_resolve(raw, "venue_logo_url", defaults)),
        **flags,
    )
