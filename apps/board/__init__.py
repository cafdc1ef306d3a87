# apps/board/__init__.py

"""
Board - Aplicação Kanban

Funcionalidades:
- Position Engine (ordenação contígua de listas e cards)
- Mutation Coordinator (mutações transacionais com lock e retry)
- Change Dispatcher e consumers WebSocket para tempo real
- API JSON de boards, listas e cards
"""
