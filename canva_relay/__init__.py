"""
Canva relay: OAuth2 + PKCE login against Canva and a small authenticated proxy
(profile, folder listing, asset upload) backed by a JSON-file token store.
"""
