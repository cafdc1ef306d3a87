# apps/core/exceptions.py

"""
Taxonomia de erros do Kanban

Cada erro carrega um `kind` estável (lido por máquinas) e uma mensagem
humana. O middleware KanbanErrorMiddleware traduz para JSON + status HTTP.
"""


class KanbanError(Exception):
    """Base de todos os erros de domínio"""

    kind = 'KANBAN_ERROR'
    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def as_dict(self):
        return {'kind': self.kind, 'message': self.message, 'details': self.details}


class NotFound(KanbanError):
    """Workspace/board/lista/card inexistente ou com soft delete"""

    kind = 'NOT_FOUND'
    status_code = 404

    @classmethod
    def for_resource(cls, resource, resource_id):
        return cls(f"{resource} {resource_id} not found")


class AccessDenied(KanbanError):
    kind = 'ACCESS_DENIED'
    status_code = 403


class NotAuthenticated(KanbanError):
    kind = 'NOT_AUTHENTICATED'
    status_code = 401


class InvalidRequest(KanbanError):
    """Entrada malformada: campo faltando, enum inválido, move entre boards"""

    kind = 'VALIDATION_ERROR'
    status_code = 400

    @classmethod
    def from_form(cls, form):
        errors = {field: [str(e) for e in errs] for field, errs in form.errors.items()}
        return cls('invalid input', details=errors)


class ConflictError(KanbanError):
    """
    Escrita concorrente na mesma sequência de posições

    Recuperável: a operação inteira pode ser repetida após reler o estado.
    """

    kind = 'CONFLICT'
    status_code = 409


class StoreFailure(KanbanError):
    """Persistência indisponível - nada foi gravado nem transmitido"""

    kind = 'STORE_FAILURE'
    status_code = 503
