from __future__ import annotations
import os

# n-gram orders kept in the index (lookup phrase = order - 1 tokens)
ORDERS: tuple[int, ...] = (2, 3, 4)

# prediction words retained per lookup phrase at build time
PRUNE_K: int = 5

# suggestions returned per query
TOP_K: int = 5

# joins lookup-phrase tokens into an index key
SEPARATOR: str = " "

# backoff weights per order; must be non-decreasing with order
BACKOFF_WEIGHTS: dict[int, float] = {2: 0.2, 3: 0.3, 4: 0.5}

# divide merged scores by the weights that actually contributed
RENORMALIZE: bool = False

# build executor:
# - "threads" runs orders concurrently in one process
# - "procs" runs orders in worker processes (source/filters must pickle)
# - "serial" builds orders one after another
BUILD_MODE: str = "threads"
WORKERS: int = min(len(ORDERS), os.cpu_count() or 1)

# sentence-range shards per order; shard counts are summed before pruning
SHARDS: int = 1

# corpus sample selection (line-level, seeded)
SAMPLE_FRACTION: float = 1.0
SAMPLE_SEED: int = 0

# corpus reader
GLOB_PATTERN: str = "*.txt"
ENCODING: str = "utf-8"

# build cache directory (None disables caching)
CACHE_DIR: str | None = None

VERBOSE: bool = os.environ.get("NEXTWORD_VERBOSE") == "1"
