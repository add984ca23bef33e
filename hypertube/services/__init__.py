# Services package init
"""
Hypertube API — Services Layer
===============================

What:  Everything between the routes (HTTP) and the store.

Service Inventory:
    - lookup:          Found / NotFound / StoreError and the retrying DocumentStore
    - user_store, movie_store, session_store: store adapters per collection
    - upload_service:  UploadStager (Accepted / Rejected staging of files)
    - movie_service:   movie-info composition
    - auth_service:    bcrypt credential checks
    - redaction:       blanking of secret fields in outbound documents

All of them are built once per application by AppContext.from_settings().
"""
