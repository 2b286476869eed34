# Routes package init
"""
School Directory Backend — API Routes Package
===============================================

Route Inventory:
    - schools.py: GET    /api/schools                (list, or ?id= fetch one)
                  POST   /api/schools                (create, multipart)
                  PUT    /api/schools?id=            (update, multipart)
                  DELETE /api/schools?id=&imagePath= (delete + image cleanup)
                  GET    /schoolImages/{filename}    (local image files)
    - health.py:  GET    /health                     (service health check)

Routes stay thin: parse the request, call SchoolService, return its result.
"""
