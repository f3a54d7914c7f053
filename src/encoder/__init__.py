# src/encoder/__init__.py — v1
