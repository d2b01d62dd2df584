"""
NewsAgg Ingestion Module
========================

Text, image and full-content extraction for ingested articles.

This module handles:
- Sanitizing feed-provided text
- Resolving article images from pages and feed media
- Extracting article bodies with per-site strategies
"""
