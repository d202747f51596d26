"""
RecipeHub Backend — API Routes Package
========================================

Route Inventory:
    - auth.py:     POST /register, POST /login
    - recipes.py:  GET/POST /recipes, GET/PUT/DELETE /recipes/{id},
                   POST /recipes/{id}/comment,
                   DELETE /recipes/{id}/comments/{index}
    - media.py:    GET  /media/{path}   (local media backend only)
    - health.py:   GET  /, GET /health

Handlers stay thin: they parse HTTP input, call a service and shape the
response. Errors propagate to the handlers registered in main.py.
"""
