# Routes package init
"""
Bug Tracker Backend: API Routes Package
=========================================

What:  HTTP route handlers that accept requests and return responses.
How:   Each route module handles one resource.

Route Inventory:
    - bugs.py:    /api/bugs                 (list, create)
                  /api/bugs/stats|users|tags
                  /api/bugs/{id}            (get, update, delete)
                  /api/bugs/{id}/regenerate-tags
    - health.py:  GET /health               (service health check, no auth)

Routes stay thin: extract parameters, call a service, return its result.
Business rules live in the services.
"""
