# layout/__init__.py
"""
Reading-order and markup inference for slide text.

Walks a slide's element tree, orders text by column, classifies it by
relative font size, and schedules whole-document runs in batches.
"""
