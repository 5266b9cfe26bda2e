"""Message templates for the rule validator, keyed by language.

Templates use ``:attribute`` for the (formatted) field name and ``:<param>``
for rule parameters, e.g. ``:min`` or ``:max``. Size rules (min, max, between,
size) have a ``numeric`` and a ``string`` variant.

English is complete. The other built-in packs translate the ``required`` and
``email`` rules and fall back to English for everything else.
"""

import logging
from typing import Any, Dict, List, Mapping, Union

from formstrategy.errors import UnknownLanguageError

logger = logging.getLogger(__name__)

Template = Union[str, Dict[str, str]]

_EN: Dict[str, Template] = {
    "accepted": "The :attribute must be accepted.",
    "alpha": "The :attribute field must contain only alphabetic characters.",
    "alpha_dash": "The :attribute field may only contain alpha-numeric characters, as well as dashes and underscores.",
    "alpha_num": "The :attribute field must be alphanumeric.",
    "array": "The :attribute must be an array.",
    "between": {
        "numeric": "The :attribute field must be between :min and :max.",
        "string": "The :attribute field must be between :min and :max characters.",
    },
    "boolean": "The :attribute attribute has to be a boolean.",
    "confirmed": "The :attribute confirmation does not match.",
    "different": "The :attribute and :different must be different.",
    "digits": "The :attribute must be :digits digits.",
    "email": "The :attribute format is invalid.",
    "in": "The selected :attribute is invalid.",
    "integer": "The :attribute must be an integer.",
    "max": {
        "numeric": "The :attribute may not be greater than :max.",
        "string": "The :attribute may not be greater than :max characters.",
    },
    "min": {
        "numeric": "The :attribute must be at least :min.",
        "string": "The :attribute must be at least :min characters.",
    },
    "not_in": "The selected :attribute is invalid.",
    "numeric": "The :attribute must be a number.",
    "regex": "The :attribute format is invalid.",
    "required": "The :attribute field is required.",
    "same": "The :attribute and :same fields must match.",
    "size": {
        "numeric": "The :attribute must be :size.",
        "string": "The :attribute must be :size characters.",
    },
    "string": "The :attribute must be a string.",
    "url": "The :attribute format is invalid.",
}

_LANGUAGES: Dict[str, Dict[str, Template]] = {
    "en": _EN,
    "ru": {
        "required": "Поле :attribute обязательно для заполнения.",
        "email": "Поле :attribute должно быть действительным электронным адресом.",
    },
    "de": {
        "required": "Das :attribute Feld muss ausgefüllt sein.",
        "email": "Das :attribute Format ist ungültig.",
    },
    "es": {
        "required": "El campo :attribute es obligatorio.",
        "email": "El campo :attribute no es un correo válido",
    },
    "fr": {
        "required": "Le champs :attribute est obligatoire.",
        "email": "Le champs :attribute contient un format invalide.",
    },
    "it": {
        "required": "Il campo :attribute è richiesto.",
        "email": "Il formato dell'attributo :attribute non è valido.",
    },
}

_default_lang = "en"


def get_default_lang() -> str:
    """Return the language used by validators that were not given one."""
    return _default_lang


def set_default_lang(lang: str) -> None:
    """Set the process-wide default language.

    Raises:
        UnknownLanguageError: If no message pack is registered for ``lang``
    """
    global _default_lang
    if lang not in _LANGUAGES:
        raise UnknownLanguageError(lang)
    logger.debug("Default validation language set to %s", lang)
    _default_lang = lang


def register_language(lang: str, templates: Mapping[str, Template]) -> None:
    """Register a message pack, merging into any pack already known for ``lang``.

    Examples:
        >>> register_language("nl", {"required": "Het :attribute veld is verplicht."})
        >>> get_messages("nl")["required"]
        'Het :attribute veld is verplicht.'
    """
    pack = _LANGUAGES.setdefault(lang, {})
    pack.update(templates)
    logger.debug("Registered %d message template(s) for language %s", len(templates), lang)


def available_languages() -> List[str]:
    return sorted(_LANGUAGES)


def get_messages(lang: str) -> Dict[str, Template]:
    """Return the full template table for ``lang`` with English fallbacks filled in.

    Raises:
        UnknownLanguageError: If no message pack is registered for ``lang``
    """
    try:
        pack = _LANGUAGES[lang]
    except KeyError:
        raise UnknownLanguageError(lang) from None
    merged: Dict[str, Template] = dict(_EN)
    merged.update(pack)
    return merged


def render(template: str, replacements: Mapping[str, Any]) -> str:
    """Substitute ``:name`` placeholders in ``template``.

    Longer placeholder names are substituted first so ``:attribute`` is never
    clobbered by a shorter parameter name.
    """
    for name in sorted(replacements, key=len, reverse=True):
        template = template.replace(f":{name}", str(replacements[name]))
    return template


__all__ = [
    "get_default_lang",
    "set_default_lang",
    "register_language",
    "available_languages",
    "get_messages",
    "render",
]
