# apps/core/__init__.py

"""
Core - Aplicação principal do Task Board

Contém:
- Models com soft delete (User, Workspace, Board, BoardList, Card)
- Entity Store e Access Gate (permissões)
- Autenticação, workspaces e administração
- Comando de manutenção verify_positions
"""
