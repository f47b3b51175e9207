"""
archflow-api Application Package

Directory Structure:
├── domain/            # Graph model and derived-state engine (pure)
│   ├── taxonomy.py    # Entity kinds and capability groups
│   ├── pricing.py     # Burn rate, capacity class, price tiers
│   ├── validation.py  # Connection validator / edge annotation
│   └── topology.py    # Architecture pattern detector
├── application/       # Flow sessions, synchronizer, debounced persistence
├── routers/           # FastAPI route handlers
├── schemas/           # Pydantic models for API requests/responses
├── services/          # Model price catalogue
├── storage/           # Flow persistence (filesystem, S3)
└── config.py          # Application configuration

Edge Fields Clarification:
1. **Durable** (id, sourceId, targetId): identity of a connection, persisted.
2. **Derived** (style, animated, label, markerEnd, className): always
   recomputed from the two endpoint nodes, never persisted or trusted on load.
"""
