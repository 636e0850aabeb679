# Routes package init
"""
TripShare Backend — API Routes Package
========================================

Route Inventory:
    - engagement.py: POST /api/items/{item_id}/engagement  (toggle like)
                     POST /api/community/{item_id}/like     (same, client path)
                     GET  /api/items/{item_id}/engagement   (read like state)
    - community.py:  POST /api/community                    (create post)
                     GET  /api/community                    (feed)
                     GET  /api/community/{post_id}          (post detail)
                     POST /api/community/{post_id}          (add comment)
    - health.py:     GET  /health                           (service health check)

Routes stay thin: resolve the caller, call a service, shape the response.
"""
