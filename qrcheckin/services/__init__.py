"""
Domain services: QR payload codec, directory, catalog and check-in ledger.
"""
