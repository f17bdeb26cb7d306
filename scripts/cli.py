"""
CLI to classify the largest face in an image -> JSON.
"""
from __future__ import annotations
import argparse, asyncio, json, logging, os
from facemood.config import Settings
from facemood.pipeline import analyze_image

def main(argv=None):
    p = argparse.ArgumentParser()
    p.add_argument("--image", required=True, help="Path to input image")
    p.add_argument("--out", default=None, help="Optional path to output JSON")
    p.add_argument("--model", default=None, help="Override MODEL_PATH")
    p.add_argument("--labels", default=None, help="Override LABELS_PATH")
    args = p.parse_args(argv)

    overrides = {}
    if args.model:
        overrides["MODEL_PATH"] = args.model
    if args.labels:
        overrides["LABELS_PATH"] = args.labels
    settings = Settings(**overrides)
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.DEBUG))

    report = asyncio.run(analyze_image(args.image, settings))
    result = report.model_dump()
    print(json.dumps(result, indent=2, ensure_ascii=False))

    if args.out:
        os.makedirs(os.path.dirname(args.out) or ".", exist_ok=True)
        with open(args.out, "w", encoding="utf-8") as f:
            json.dump(result, f, indent=2, ensure_ascii=False)
        print(f"Report written to {args.out}")
    return result

if __name__ == "__main__":
    main()
