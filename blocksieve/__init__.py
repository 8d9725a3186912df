"""
blocksieve package - Domain extraction and blocklist compiler

Modules:
    matcher: Find the domain in a line of arbitrary text
    reducer: Prune subdomains covered by a parent domain
    formats: plain, unbound and rpz output
    fetcher: Download URL sources with ETag/Last-Modified caching
    sandbox: pledge/unveil startup hook
    pipeline: Main processing pipeline and command line
"""

from blocksieve.matcher import extract_domain, iter_domains
from blocksieve.reducer import reduce_domains

__version__ = "1.0.0"

__all__ = ["extract_domain", "iter_domains", "reduce_domains", "__version__"]
