"""
PetNet Backend: Middleware Package
====================================

Middleware Chain:
    Request → [Request ID] → [Access Log] → [GZip] → [CORS] → Route Handler

    Request ID runs first so every log line of the request, access log
    included, carries the same correlation id. Responses travel back
    through the chain in reverse order.
"""
