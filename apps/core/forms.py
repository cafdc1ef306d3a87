# apps/core/forms.py

"""
Formulários de validação da API JSON

Os clientes enviam JSON em camelCase; `clean_payload` converte as chaves
para os nomes dos campos, valida e devolve só o que veio no corpo (PUT
parcial não apaga campos omitidos).
"""

import re

from django import forms
from django.core.exceptions import ValidationError

from .exceptions import InvalidRequest
from .models import User, WorkspaceMember

_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')


def to_snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub('_', key).lower()


def clean_payload(form_class, data, partial=False) -> dict:
    """
    Valida `data` com `form_class`

    Com partial=True os campos obrigatórios ausentes são ignorados e o
    resultado contém apenas as chaves presentes no corpo.
    Levanta InvalidRequest com os erros por campo.
    """
    if not isinstance(data, dict):
        raise InvalidRequest('request body must be a JSON object')

    normalized = {to_snake_case(key): value for key, value in data.items()}
    form = form_class(data=normalized)
    if partial:
        for name, field in form.fields.items():
            if name not in normalized:
                field.required = False

    if not form.is_valid():
        raise InvalidRequest.from_form(form)

    if not partial:
        return form.cleaned_data
    return {name: value for name, value in form.cleaned_data.items() if name in normalized}


class IdListField(forms.Field):
    """Lista JSON de ids inteiros (ex: assignedUserIds)"""

    default_error_messages = {
        'invalid': 'Enter a list of integer ids.',
    }

    def to_python(self, value):
        if value in (None, ''):
            return []
        if not isinstance(value, (list, tuple)):
            raise ValidationError(self.error_messages['invalid'], code='invalid')
        ids = []
        for item in value:
            if isinstance(item, bool):
                raise ValidationError(self.error_messages['invalid'], code='invalid')
            try:
                ids.append(int(item))
            except (TypeError, ValueError):
                raise ValidationError(self.error_messages['invalid'], code='invalid')
        return ids


# === AUTENTICAÇÃO ===

class LoginForm(forms.Form):
    """Login por usuário ou email"""

    username = forms.CharField(label='Usuário ou Email', max_length=150)
    password = forms.CharField(label='Senha', strip=False)
    remember_me = forms.BooleanField(label='Lembrar-me', required=False)


class RegisterForm(forms.Form):
    """Cadastro aberto; o papel global é sempre USER"""

    username = forms.CharField(max_length=150)
    email = forms.EmailField()
    password = forms.CharField(min_length=6, strip=False)
    full_name = forms.CharField(max_length=100, required=False)


# === WORKSPACES ===

class WorkspaceForm(forms.Form):
    name = forms.CharField(max_length=100)
    description = forms.CharField(required=False)


class MemberForm(forms.Form):
    """Vínculo de usuário a workspace; papel padrão MEMBER"""

    user_id = forms.IntegerField(min_value=1)
    role = forms.ChoiceField(choices=WorkspaceMember.Role.choices, required=False)


class BoardMemberForm(forms.Form):
    user_id = forms.IntegerField(min_value=1)


# === ADMINISTRAÇÃO ===

class RoleForm(forms.Form):
    role = forms.ChoiceField(choices=User.Role.choices)
