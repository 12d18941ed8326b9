"""
Ingestion — document extraction, chunking, and embedding into the vector store.

This module is responsible for the ETL-like pipeline that converts raw
documents (PDF, DOCX, XLSX, plain text) into embedded word-window chunks
stored in the vector index.
"""
