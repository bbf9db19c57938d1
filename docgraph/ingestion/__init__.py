# -*- coding: utf-8 -*-
"""
Ingestion package for document loading, chunking, classification and the
parallel embedding pipeline.

Contains document_loader (source directory discovery), text_chunker (word
windows with hard section boundaries), chunk_classifier (qa / procedure /
fact) and embed_processor (bounded worker pool).
"""
