"""
Usage Window: raw usage window optimization for arrears usage billing.
"""
