"""
Content Service package for the multilingual content layer.

The content service serves localized bundles, enforcing:
- Caching: bounded LRU + TTL translation cache with persistence
- Fallback: per-language fallback chains with field-level merging
- Warmup: concurrent preloading of common namespaces

Structure:
- app.main: FastAPI app, routes, and lifecycle wiring.
- app.adapters: HTTP client for the headless CMS.
- app.caching: Cache store, persistence, sweeper, preloader and stats.
- app.content: Cache-first loading over the fetch collaborator.
- app.fallback: Chains, completeness predicate, merger and resolver.
- app.preferences: Regional preferences and language negotiation.
"""
