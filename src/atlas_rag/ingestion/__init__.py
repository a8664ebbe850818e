"""
Ingestion — text extraction, chunking, embedding and persistence.

This module turns uploaded files (PDF, TXT, CSV, DOC/DOCX, XLS/XLSX,
PPTX) into embedded, citable chunks stored in the collection, one file
at a time.
"""
