# Routes package init
"""
Quotebook Backend — API Routes Package
======================================

Route Inventory:
    - auth.py:         /api/auth/*          sign-up, login, logout, session
    - quotes.py:       /api/quotes*         browsing, quote of the day, categories
                       /api/feed            home screen bundle
    - favorites.py:    /api/favorites*      signed-in user's favorites
    - collections.py:  /api/collections*    signed-in user's collections
    - preferences.py:  /api/preferences     presentation preferences
    - health.py:       /health              service + backend reachability

Routes stay thin: read the request, call one service method, shape the
response. Errors are raised as QuotebookError subclasses and rendered by the
handlers in main.py.
"""
