"""mistralkit CLI: validate settings, call the provider APIs and query audit logs."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any


def _settings(args: argparse.Namespace) -> Any:
    """Load settings from --config (or $MISTRALKIT_CONFIG); defaults if absent."""
    from contracts.settings import Settings
    from bindings.settings_loader import configure_logging, load_settings, settings_path

    path = args.config or settings_path()
    if Path(path).exists():
        settings = load_settings(path)
    elif args.config:
        print(f"Error: settings file not found: {path}", file=sys.stderr)
        sys.exit(1)
    else:
        settings = Settings()
    configure_logging(settings)
    return settings


def _audit_logger(settings: Any) -> Any:
    if not settings.audit.path:
        return None
    from bindings.audit.logger import JsonlAuditLogger

    return JsonlAuditLogger(settings.audit.path)


def cmd_validate(args: argparse.Namespace) -> None:
    """Validate a mistralkit.yaml settings file."""
    from bindings.settings_loader import load_settings

    path = args.settings
    try:
        settings = load_settings(path)
    except FileNotFoundError:
        print(f"Error: settings file not found: {path}", file=sys.stderr)
        sys.exit(1)
    except Exception as exc:
        print(f"Error: invalid settings: {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Settings OK: {settings.app.name} v{settings.app.version}")
    print(f"  Mistral:       {settings.mistral.base_url}")
    print(f"  Chat model:    {settings.mistral.chat.model}")
    print(f"  Embed model:   {settings.mistral.embedding.model}")
    print(f"  OpenAI:        {settings.openai.base_url}")
    print(f"  Transcription: {settings.openai.transcription.model}")
    print(f"  Audit path:    {settings.audit.path or '(disabled)'}")

    for name, client in (("mistral", settings.mistral), ("openai", settings.openai)):
        try:
            client.resolve_api_key()
        except ValueError:
            print(f"  Warning: no API key for {name} (set api_key or ${client.api_key_env})")


def cmd_chat(args: argparse.Namespace) -> None:
    """Send one prompt to the chat completion endpoint."""
    from contracts.chat import ChatCompletionMessage, Role
    from bindings.model_adapters.mistral import MistralChatAdapter

    settings = _settings(args)
    messages = []
    if args.system:
        messages.append(ChatCompletionMessage(role=Role.SYSTEM, content=args.system))
    messages.append(ChatCompletionMessage(role=Role.USER, content=args.prompt))

    overrides: dict[str, Any] = {}
    if args.model:
        overrides["model"] = args.model
    if args.temperature is not None:
        overrides["temperature"] = args.temperature

    try:
        adapter = MistralChatAdapter(settings.mistral, audit_logger=_audit_logger(settings))
        request = adapter.create_request(messages, stream=args.stream, **overrides)
        if args.stream:
            asyncio.run(_print_stream(adapter, request, args.json))
            return
        completion = asyncio.run(adapter.chat_completion(request))
    except (ValueError, RuntimeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(completion.model_dump_json(exclude_none=True))
    else:
        for choice in completion.choices:
            print(choice.message.content or "")


async def _print_stream(adapter: Any, request: Any, as_json: bool) -> None:
    async for chunk in adapter.chat_completion_stream(request):
        if as_json:
            print(chunk.model_dump_json(exclude_none=True))
            continue
        for choice in chunk.choices:
            if choice.delta.content:
                print(choice.delta.content, end="", flush=True)
    if not as_json:
        print()


def cmd_embed(args: argparse.Namespace) -> None:
    """Embed one or more texts."""
    from bindings.embedding_adapters.mistral import MistralEmbeddingAdapter

    settings = _settings(args)
    try:
        adapter = MistralEmbeddingAdapter(settings.mistral, audit_logger=_audit_logger(settings))
        request = adapter.create_request(args.texts[0] if len(args.texts) == 1 else args.texts)
        result = asyncio.run(adapter.embeddings(request))
    except (ValueError, RuntimeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(result.model_dump_json(exclude_none=True))
        return
    for item in result.data:
        head = ", ".join(f"{v:.4f}" for v in item.embedding[:4])
        print(f"[{item.index}] dim={len(item.embedding)}  {head}, ...")


def cmd_transcribe(args: argparse.Namespace) -> None:
    """Transcribe an audio file."""
    from contracts.transcription import (
        TranscriptionOptions,
        TranscriptionRequest,
        TranscriptionResponseFormat,
    )
    from bindings.transcription_adapters.openai import OpenAiTranscriptionAdapter

    settings = _settings(args)
    try:
        options = TranscriptionOptions(
            language=args.language,
            response_format=TranscriptionResponseFormat(args.format) if args.format else None,
        )
        request = TranscriptionRequest.from_path(args.audio, options)
        adapter = OpenAiTranscriptionAdapter(settings.openai, audit_logger=_audit_logger(settings))
        response = asyncio.run(adapter.transcribe(request))
    except (ValueError, RuntimeError, FileNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    print(response.result.text)


def _log_path(args: argparse.Namespace) -> str:
    if args.log_path:
        return args.log_path
    settings = _settings(args)
    if not settings.audit.path:
        print("Error: no audit log path given or configured", file=sys.stderr)
        sys.exit(1)
    return settings.audit.path


def cmd_logs(args: argparse.Namespace) -> None:
    """Query audit logs."""
    from contracts.audit import AuditEvent
    from bindings.audit.query import query_by_request, query_filtered

    log_path = _log_path(args)
    if not Path(log_path).exists():
        print(f"No audit log found at {log_path}", file=sys.stderr)
        sys.exit(1)

    if args.request_id:
        entries = query_by_request(log_path, args.request_id)
    else:
        event = None
        if args.event:
            try:
                event = AuditEvent(args.event)
            except ValueError:
                valid = ", ".join(e.value for e in AuditEvent)
                print(f"Unknown event type: {args.event}", file=sys.stderr)
                print(f"Valid events: {valid}", file=sys.stderr)
                sys.exit(1)
        entries, _ = query_filtered(log_path, event=event, operation=args.operation, limit=args.limit)
        entries.reverse()

    if not entries:
        print("No matching audit entries.")
        return

    for entry in entries:
        record = json.loads(entry.model_dump_json())
        if args.json:
            print(json.dumps(record))
        else:
            ts = record["ts"][:19]
            rid = record["request_id"][:8]
            detail = json.dumps(record.get("detail", {}))
            print(f"{ts}  [{record['event']:19s}]  {rid}  {record['operation']:12s}  {detail}")


def cmd_metrics(args: argparse.Namespace) -> None:
    """Print aggregated exchange metrics."""
    from bindings.metrics import compute_metrics

    log_path = _log_path(args)
    if not Path(log_path).exists():
        print(f"No audit log found at {log_path}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(compute_metrics(log_path), indent=2))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="mistralkit",
        description="mistralkit: typed Mistral AI / OpenAI client CLI",
    )
    parser.add_argument("--config", "-c", help="Path to mistralkit.yaml")
    sub = parser.add_subparsers(dest="command")

    # validate
    p_val = sub.add_parser("validate", help="Validate a mistralkit.yaml settings file")
    p_val.add_argument(
        "settings", nargs="?", default="mistralkit.yaml", help="Path to settings"
    )
    p_val.set_defaults(func=cmd_validate)

    # chat
    p_chat = sub.add_parser("chat", help="Send a prompt to the chat completion API")
    p_chat.add_argument("prompt", help="User message")
    p_chat.add_argument("--system", "-s", help="System message sent before the prompt")
    p_chat.add_argument("--model", "-m", help="Model id (defaults to settings)")
    p_chat.add_argument("--temperature", "-t", type=float, help="Sampling temperature")
    p_chat.add_argument("--stream", action="store_true", help="Stream the answer")
    p_chat.add_argument("--json", action="store_true", help="Output raw JSON")
    p_chat.set_defaults(func=cmd_chat)

    # embed
    p_emb = sub.add_parser("embed", help="Embed one or more texts")
    p_emb.add_argument("texts", nargs="+", help="Texts to embed")
    p_emb.add_argument("--json", action="store_true", help="Output raw JSON")
    p_emb.set_defaults(func=cmd_embed)

    # transcribe
    p_tr = sub.add_parser("transcribe", help="Transcribe an audio file")
    p_tr.add_argument("audio", help="Path to the audio file")
    p_tr.add_argument("--language", "-l", help="ISO-639-1 language of the audio")
    p_tr.add_argument("--format", "-f", help="json, text, srt, verbose_json or vtt")
    p_tr.set_defaults(func=cmd_transcribe)

    # logs
    p_logs = sub.add_parser("logs", help="Query audit logs")
    p_logs.add_argument("log_path", nargs="?", help="Path to audit JSONL file")
    p_logs.add_argument("--request-id", "-r", help="Filter by request ID")
    p_logs.add_argument("--event", "-e", help="Filter by event type")
    p_logs.add_argument("--operation", "-o", help="Filter by operation (chat, chat.stream, ...)")
    p_logs.add_argument("--limit", "-n", type=int, default=20, help="Max entries")
    p_logs.add_argument("--json", action="store_true", help="Output raw JSON")
    p_logs.set_defaults(func=cmd_logs)

    # metrics
    p_met = sub.add_parser("metrics", help="Aggregate audit log metrics")
    p_met.add_argument("log_path", nargs="?", help="Path to audit JSONL file")
    p_met.set_defaults(func=cmd_metrics)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
