# Routes package init
"""
Project Gallery Backend — API Routes Package
==============================================

Route Inventory:
    - projects.py: /projects CRUD, /projects-with-gallery
    - gallery.py:  /projects/{id}/gallery upload, /gallery list/delete/replace
    - auth.py:     POST /login
    - files.py:    GET  /uploads/{name}   (filesystem storage only)
    - health.py:   GET  /health

Handlers stay thin: extract request data, call a service, return the
response model. Business logic lives in app.services.
"""
