"""
PetNet Backend: Services Layer
================================

Business rules live here; routes only translate HTTP to service calls.

Service Inventory:
    - PublicationService: publication/pet CRUD and the availability invariant
    - AdoptionRequestService: submit, cancel, approve/reject, listings
    - NotificationSink (abstract): how a requester hears about a decision
    - EmailNotificationService: SMTP implementation of NotificationSink
"""
