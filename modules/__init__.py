# Rotation Data Proxy - Modules Package
"""
Modules for the congressional and insider trade data proxy.

- fetcher: async httpx document fetcher
- text_normalizer / parsing: markup stripping, dates, tickers, amounts
- extractors: table-row, flattened-PTR-stream and loose-XML strategies
- pdf_text: PDF text layer with optional Tesseract OCR for scans
- source_chain: adapter base classes and the priority fallback chain
- sources_congress / sources_insiders: concrete upstream adapters
- clustering / assembler: dedup, per-ticker clusters, response shaping
"""
