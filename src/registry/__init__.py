"""Module retrieval.

- modcache.py: local Go module cache lookup and path escaping
- goproxy.py: module proxy protocol client (version list, source zip)
- fetcher.py: cache-first module fetcher
"""
