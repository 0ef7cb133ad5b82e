#!/usr/bin/env python3
"""
credentials server を起動するエントリポイント

Secure cookie を使うので、ブラウザや requests から叩く場合は
--ssl-certfile / --ssl-keyfile で HTTPS にすること。
"""
import argparse
import sys
from pathlib import Path

# プロジェクトルートをPYTHONPATHに追加
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import uvicorn
from dotenv import load_dotenv


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the in-process credentials server")
    parser.add_argument("--host", type=str, default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="開発時の自動リロード")
    parser.add_argument("--ssl-certfile", type=str)
    parser.add_argument("--ssl-keyfile", type=str)
    return parser


def main(argv=None) -> None:
    load_dotenv()
    args = _build_parser().parse_args(argv)
    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        ssl_certfile=args.ssl_certfile,
        ssl_keyfile=args.ssl_keyfile,
    )


if __name__ == "__main__":
    main()
