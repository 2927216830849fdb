# Services package init
"""
Quotebook Backend — Services Layer
==================================

What:  Everything between the HTTP routes and the remote backend.

Service Inventory:
    - PreferenceStore (abstract): local key-value persistence
      (InMemoryPreferenceStore, JsonFilePreferenceStore)
    - BackendGateway: the only component issuing HTTP calls to Supabase
    - SessionStore: remembered-session mirror on top of the preference store
    - QuoteService: quote, favorite and collection queries
    - AuthService: sign-up/login/logout and the in-memory session
    - PreferencesService: presentation preferences
    - ServiceContainer: builds and owns one instance of each

Services receive their collaborators through constructors. There are no
module-level service instances; the running app keeps its container on
`app.state.services`.
"""
