"""
PediCare knowledge base.

Contains clinical reference logic:
- Growth analytics and reference medians
"""
