from __future__ import annotations
import argparse
from flask import Flask, request, jsonify
from nextword.config import TOP_K
from nextword.engine import Engine

app = Flask(__name__)
_engine: Engine | None = None

# ---------- API ----------
@app.get("/api/predict")
def api_predict():
    if _engine is None or _engine.predictor is None:
        return jsonify({"error": "not ready"}), 503
    q = request.args.get("q", "", type=str)
    k = request.args.get("k", TOP_K, type=int)
    if k is None or k < 1:
        return jsonify({"error": "k must be a positive integer"}), 400
    if not q.strip():
        return jsonify([])
    rows = _engine.predict_text(q, top_k=k)
    return jsonify([{"word": r.word, "score": r.score} for r in rows])


@app.get("/health")
def health():
    ready = _engine is not None and _engine.store is not None
    orders = list(_engine.store.orders) if ready else []  # type: ignore
    return jsonify({"ok": ready, "orders": orders}), (200 if ready else 503)


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Serve next-word predictions as JSON")
    mode = ap.add_mutually_exclusive_group(required=True)
    mode.add_argument("--build", action="store_true")
    mode.add_argument("--load", action="store_true")
    ap.add_argument("--roots", nargs="+", default=[])
    ap.add_argument("--store", default=None, help="NGX path (loaded, or written after --build)")
    ap.add_argument("--cache-dir", default=None)
    ap.add_argument("--profanity", default=None)
    ap.add_argument("--vocab", default=None)
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=8000)
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args(argv)

    global _engine
    eng = Engine()
    if args.build:
        if not args.roots:
            ap.error("--build requires --roots")
        eng.build(
            roots=args.roots, out=args.store, cache_dir=args.cache_dir,
            vocab=args.vocab, profanity=args.profanity, verbose=args.verbose,
        )
    else:
        if not args.store:
            ap.error("--load requires --store")
        eng.load(args.store, profanity=args.profanity, verbose=args.verbose)
    _engine = eng

    try:
        app.run(host=args.host, port=args.port, debug=args.verbose)
    finally:
        _engine.shutdown()
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
