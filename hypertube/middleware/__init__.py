# Middleware package init
"""
Hypertube API — Middleware Package
===================================

What:  The request pipeline every request passes through before a handler.

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [Security Headers]
            → [Body Parser] → [Validation] → [Session] → Route Handler

    1. Request ID: correlation id for logs and fault bodies
    2. Logging: access log with status and duration
    3. GZip: response compression
    4. Security Headers: X-Frame-Options / X-XSS-Protection on every response,
       faults from the inner layers included
    5. Body Parser: JSON / urlencoded body → request state, replayed downstream
    6. Validation: a fresh RequestValidator on the request state
    7. Session: cookie → session record → identity, Set-Cookie on the way out

    Upload staging is not a middleware: multipart routes declare it as a
    dependency so it only runs where a file field is expected.

    Starlette runs middleware in reverse order of registration, so
    create_app() adds them from the innermost (Session) outwards.
"""
