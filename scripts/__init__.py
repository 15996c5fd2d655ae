"""
Operational Scripts

Available scripts:
    - seed_data.py: Creates the founding chancellor of a diocese

Usage:
    python -m scripts.seed_data --diocese tagbilaran --email ... --name ...
"""
