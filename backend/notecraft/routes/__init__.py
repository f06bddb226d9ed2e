# Routes package init
"""
NoteCraft Backend — API Routes Package
=======================================

Route Inventory:
    - auth.py:    GET    /api/auth/user
    - notes.py:   GET    /api/notes
                  GET    /api/notes/{id}
                  POST   /api/notes
                  PUT    /api/notes/{id}
                  DELETE /api/notes/{id}
    - health.py:  GET    /health

Routes stay thin: read the request, call the service, shape the response.
"""
