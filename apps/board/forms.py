# apps/board/forms.py

from django import forms

from apps.core.forms import IdListField
from apps.core.models import Card


class BoardForm(forms.Form):
    """Criação e edição de board"""

    workspace_id = forms.IntegerField(min_value=1)
    name = forms.CharField(max_length=100)
    description = forms.CharField(required=False)


class ListForm(forms.Form):
    """Criação e edição de lista; posição ausente = fim da sequência"""

    board_id = forms.IntegerField(min_value=1)
    name = forms.CharField(max_length=100)
    position = forms.IntegerField(required=False)


class CardForm(forms.Form):
    list_id = forms.IntegerField(min_value=1)
    title = forms.CharField(max_length=200)
    description = forms.CharField(required=False)
    position = forms.IntegerField(required=False)
    assigned_user_ids = IdListField(required=False)
    # Campo legado de responsável único
    assigned_to = forms.IntegerField(required=False, min_value=1)
    due_date = forms.DateTimeField(required=False)
    priority = forms.ChoiceField(choices=Card.Priority.choices, required=False)

    def clean(self):
        cleaned = super().clean()
        if not cleaned.get('assigned_user_ids') and cleaned.get('assigned_to'):
            cleaned['assigned_user_ids'] = [cleaned['assigned_to']]
        return cleaned


class CardUpdateForm(CardForm):
    """Edição de card; posição e lista mudam só pelo move"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        del self.fields['list_id']
        del self.fields['position']


class MoveCardForm(forms.Form):
    target_list_id = forms.IntegerField(min_value=1)
    new_position = forms.IntegerField(required=False)
