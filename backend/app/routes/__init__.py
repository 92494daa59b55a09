"""
Wellspring Backend - API Routes Package
========================================

Route Inventory:
    - content.py:   POST /api/convert           (free text → session document)
                    POST /api/content/fetch     (load JSON from a json_url)
    - sessions.py:  /api/sessions/...           (browse, edit, publish, delete)
    - health.py:    GET  /health                (service health check)

Routes stay thin: extract request data, call a service, shape the response.
Business rules live in app/services.
"""
