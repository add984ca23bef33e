# Routes package init
"""
Hypertube API — Routes Package
===============================

Route Inventory:
    - movie.py:   GET  /api/movie/info/{idImdb}  (movie + calling user)
    - auth.py:    POST /api/auth/login           (bind identity to session)
                  POST /api/auth/logout          (destroy session)
    - user.py:    POST /api/user/picture         (profile picture upload)
    - health.py:  GET  /health                   (store connectivity)

Routes stay thin: pull what the middleware attached to the request, call a
service, return its Envelope. Every handler response carries an `error`
list, empty on success.
"""
