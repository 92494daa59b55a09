# Services package init
"""
Wellspring Backend - Services Layer
====================================

Service Inventory:
    - SessionTextConverter: Free text → SessionDocument (pure, no I/O)
    - SessionService: Session CRUD, publishing and pagination
    - ContentFetchService: Remote JSON loading with retry + circuit breaker

Services never see HTTP objects; they raise app.exceptions errors and the
global handlers in main.py turn them into responses.
"""
