from __future__ import annotations
import argparse, sys, json
from nextword import config as CFG
from nextword.engine import Engine
from nextword.errors import CorruptIndex, EmptyCorpusSample


def _orders(text: str) -> tuple[int, ...]:
    try:
        return tuple(sorted({int(x) for x in text.split(",") if x.strip()}))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected comma-separated ints, got {text!r}")


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Next-word predictor CLI (Engine-backed)")
    g = p.add_mutually_exclusive_group(required=True)
    g.add_argument("--build", action="store_true", help="Build a store from --roots")
    g.add_argument("--load", action="store_true", help="Load an existing store (--store)")

    p.add_argument("--roots", nargs="+", default=[], help="Folders to scan for .txt")
    p.add_argument("--out", default=None, help="Write the built store to this NGX path")
    p.add_argument("--store", default=None, help="NGX store to load")
    p.add_argument("--cache-dir", default=None, help="Versioned build cache directory")
    p.add_argument("--rebuild", action="store_true", help="Ignore and replace the cache entry")
    p.add_argument("--prune-k", type=int, default=CFG.PRUNE_K, help="Next words kept per phrase")
    p.add_argument("--orders", type=_orders, default=CFG.ORDERS, help="e.g. 2,3,4")
    p.add_argument("--fraction", type=float, default=None, help="Share of corpus lines to sample")
    p.add_argument("--seed", type=int, default=None, help="Sampling seed")
    p.add_argument("--vocab", default=None, help="Word list; pairs with unknown words are dropped")
    p.add_argument("--profanity", default=None, help="Word list never suggested")
    p.add_argument("--mode", choices=["threads", "procs", "serial"], default=None)
    p.add_argument("--workers", type=int, default=None)
    p.add_argument("-k", type=int, default=CFG.TOP_K, help="Top-K suggestions")
    p.add_argument("--repl", action="store_true", help="Interactive loop after init")
    p.add_argument("--q", default=None, help="Single query to run once")
    p.add_argument("--json", action="store_true", help="Emit JSON rows")
    p.add_argument("--stats", action="store_true", help="Print phrases/entries per order")
    p.add_argument("--verbose", action="store_true")

    args = p.parse_args(argv)
    if args.k < 1:
        p.error("-k must be a positive integer")

    eng = Engine()
    try:
        try:
            if args.build:
                if not args.roots:
                    p.error("--build requires --roots")
                eng.build(
                    roots=args.roots,
                    out=args.out,
                    cache_dir=args.cache_dir,
                    rebuild=args.rebuild,
                    orders=args.orders,
                    prune_k=args.prune_k,
                    fraction=args.fraction,
                    seed=args.seed,
                    vocab=args.vocab,
                    profanity=args.profanity,
                    mode=args.mode,
                    workers=args.workers,
                    verbose=args.verbose,
                )
            else:
                if not args.store:
                    p.error("--load requires --store")
                eng.load(args.store, profanity=args.profanity, verbose=args.verbose)
        except (EmptyCorpusSample, CorruptIndex) as e:
            print(f"error: {e}", file=sys.stderr)
            return 2

        if args.stats:
            stats = eng.stats()
            if args.json:
                print(json.dumps(stats, indent=2))
            else:
                print("Order  K   Phrases     Entries")
                for o, s in stats.items():
                    print(f"{o:<6} {s['k']:<3} {s['phrases']:<11,} {s['entries']:,}")

        def run_query(q: str):
            rows = eng.predict_text(q, top_k=args.k)
            if args.json:
                print(json.dumps([{"word": r.word, "score": r.score} for r in rows],
                                 ensure_ascii=False, indent=2))
            else:
                if not rows:
                    print("(no suggestion)"); return
                print("#  Score    Word")
                for i, r in enumerate(rows, 1):
                    print(f"{i:<2} {r.score:<8.4f} {r.word}")

        if args.q:
            run_query(args.q)

        if args.repl:
            print("Type the words so far (empty line to exit).")
            while True:
                try:
                    q = input("> ").strip()
                except (EOFError, KeyboardInterrupt):
                    break
                if not q:
                    break
                run_query(q)

        return 0
    finally:
        eng.shutdown()

if __name__ == "__main__":
    raise SystemExit(main())
