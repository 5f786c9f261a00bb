"""
PetNet Backend: API Routes Package
====================================

Route Inventory:
    - publications.py: POST   /api/publications              (create)
                       GET    /api/publications/available    (marketplace)
                       GET    /api/publications/mine         (owner dashboard)
                       GET    /api/publications/{id}         (detail + owner contact)
                       PUT    /api/publications/{id}         (edit)
                       DELETE /api/publications/{id}         (delete)
    - requests.py:     POST   /api/requests                  (submit)
                       GET    /api/requests/received         (owner inbox)
                       GET    /api/requests/sent             (requester outbox)
                       PATCH  /api/requests/{id}/status      (approve/reject/reopen)
                       DELETE /api/requests/{id}             (cancel)
    - health.py:       GET    /health

Routes stay thin: authenticate, parse, call one service method, return its
response model. Every rule lives in the services.
"""
