"""
PediCare - records for a small pediatric practice.
"""
