"""
Usage ledger storage.
"""
