import argparse
import sys

from ._exceptions import APIError
from ._perplexity import Perplexity
from ._types import delta_text


def print_search(client: Perplexity, query: str, max_results: int):
    response = client.search.create(query, max_results=max_results)
    results = response.get("results") or []
    if not results:
        print("No results found.")
        return
    for i, result in enumerate(results, 1):
        print(f"{i}. {result.get('title', 'No title')}")
        snippet = result.get("snippet") or ""
        if snippet:
            print(f"   {snippet[:200]}")
        print(f"   URL: {result.get('url', 'No URL')}")


def print_chat(client: Perplexity, message: str, model: str, stream: bool):
    if stream:
        with client.chat.create_stream(message, model=model) as chunks:
            for chunk in chunks:
                print(delta_text(chunk), end="", flush=True)
        print()
        return

    response = client.chat.create(message, model=model)
    print(delta_text(response))
    citations = response.get("citations") or []
    if citations:
        print("\nSources:")
        for i, url in enumerate(citations, 1):
            print(f"[{i}] {url}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="perplexity-ai", description="Query the Perplexity API")
    parser.add_argument("--api-key", default=None, help="API key (defaults to PERPLEXITY_API_KEY)")
    parser.add_argument("--message", required=True, help="Message to send, or the query with --search")
    parser.add_argument("--model", default="sonar", help="Model name")
    parser.add_argument("--stream", action="store_true", help="Stream the answer as it is generated")
    parser.add_argument("--search", action="store_true", help="Run a web search instead of a chat completion")
    parser.add_argument("--max-results", type=int, default=5, help="Number of search results")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        with Perplexity(api_key=args.api_key) as client:
            if args.search:
                print_search(client, args.message, args.max_results)
            else:
                print_chat(client, args.message, args.model, args.stream)
    except APIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0
