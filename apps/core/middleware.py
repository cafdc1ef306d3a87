# apps/core/middleware.py

import logging

from django.http import JsonResponse

from .exceptions import KanbanError

logger = logging.getLogger(__name__)


class KanbanErrorMiddleware:
    """
    Traduz erros de domínio em respostas JSON

    {"success": false, "error": {"kind": ..., "message": ..., "details": ...}}
    com o status HTTP de cada tipo de erro. Outras exceções seguem para o
    tratamento padrão do Django.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if not isinstance(exception, KanbanError):
            return None

        if exception.status_code >= 500:
            logger.error(f"❌ {exception.kind} em {request.method} {request.path}: {exception.message}")
        else:
            logger.info(f"{exception.kind} em {request.method} {request.path}: {exception.message}")

        return JsonResponse(
            {'success': False, 'error': exception.as_dict()},
            status=exception.status_code,
        )
