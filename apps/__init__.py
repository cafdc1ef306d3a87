# apps/__init__.py

"""
Task Board - Aplicações Django

Este pacote contém todas as aplicações do sistema:
- core: Models, persistência, permissões, autenticação e workspaces
- board: Kanban, ordenação, mutações e WebSockets
"""

__version__ = '0.1.0'
