# apps/core/utils.py

import json
from typing import Optional

from .exceptions import InvalidRequest


def format_user_name(user) -> Optional[str]:
    """
    Nome de exibição de um usuário

    Usa o nome completo quando existe; senão a parte local do username
    (antes do @, se for email) com a primeira letra maiúscula.
    Ex: "alice@empresa.com" -> "Alice"
    """
    if user is None:
        return None

    if user.full_name and user.full_name.strip():
        return user.full_name

    username = user.username
    if '@' in username:
        username = username[:username.index('@')]

    if username:
        username = username[0].upper() + username[1:]
    return username


def isoformat_or_none(value) -> Optional[str]:
    """Datas viajam como string ISO (channel layers não serializam datetime)"""
    return value.isoformat() if value else None


def read_json(request) -> dict:
    """Corpo JSON da requisição (vazio vira {})"""
    if not request.body:
        return {}
    try:
        return json.loads(request.body)
    except (ValueError, UnicodeDecodeError):
        raise InvalidRequest('malformed JSON body')
