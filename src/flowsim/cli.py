"""
Command-line interface for flowsim.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict

from .config import configure_logging, load_config
from .errors import FlowsimError, format_error
from .expressions import ExpressionEvaluator
from .flows.context import ExecutionContext
from .importer import import_flow
from .records.store import InMemoryRecordStore
from .simulator import FlowSimulator
from .version import __version__


def build_cli_parser() -> argparse.ArgumentParser:
    cli = argparse.ArgumentParser(prog="flowsim", description="Record-change flow simulator")
    cli.add_argument(
        "--version",
        action="version",
        version=f"flowsim {__version__} (Python {sys.version.split()[0]})",
    )
    cli.add_argument("--log-level", help="Override FLOWSIM_LOG_LEVEL")
    sub = cli.add_subparsers(dest="command", required=True)
    commands: list[str] = []

    def register(name: str, **kwargs):
        commands.append(name)
        return sub.add_parser(name, **kwargs)

    import_cmd = register("import", help="Import a flow document and print its summary")
    import_cmd.add_argument("file", type=Path)
    import_cmd.add_argument("--name", help="Name to import the flow under")

    simulate_cmd = register("simulate", help="Run a flow document once against trigger inputs")
    simulate_cmd.add_argument("file", type=Path)
    simulate_cmd.add_argument("--input", default="{}", help="Trigger inputs as JSON, or @path to a JSON file")

    eval_cmd = register("eval", help="Evaluate an expression against trigger inputs")
    eval_cmd.add_argument("expression")
    eval_cmd.add_argument("--input", default="{}", help="Trigger inputs as JSON, or @path to a JSON file")

    serve_cmd = register("serve", help="Start the FastAPI server")
    serve_cmd.add_argument("--host", default=None)
    serve_cmd.add_argument("--port", type=int, default=None)
    serve_cmd.add_argument("--dry-run", action="store_true", help="Build app but do not start server")

    cli.set_defaults(_commands=commands)
    return cli


def _load_inputs(raw: str) -> Dict[str, Any]:
    text = Path(raw[1:]).read_text(encoding="utf-8") if raw.startswith("@") else raw
    try:
        value = json.loads(text or "{}")
    except json.JSONDecodeError as exc:
        raise SystemExit(f"--input is not valid JSON: {exc.msg}") from exc
    if not isinstance(value, dict):
        raise SystemExit("--input must be a JSON object.")
    return value


def _read_document(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise SystemExit(f"Cannot read {path}: {exc.strerror}") from exc


def main(argv: list[str] | None = None) -> None:
    cli = build_cli_parser()
    args = cli.parse_args(argv)
    config = load_config()
    if args.log_level:
        config.log_level = args.log_level.upper()
    configure_logging(config)

    if args.command == "import":
        try:
            result = import_flow(_read_document(args.file), name=args.name)
        except FlowsimError as exc:
            raise SystemExit(format_error(exc)) from exc
        from .server.routes.flows import summarize_flow

        print(json.dumps(summarize_flow(result.flow).model_dump(), indent=2))
        return

    if args.command == "simulate":
        inputs = _load_inputs(args.input)
        simulator = FlowSimulator(store=InMemoryRecordStore(), config=config)
        try:
            flow = simulator.register_flow_from_document(_read_document(args.file))
            result = simulator.simulate_trigger(flow.name, inputs)
        except FlowsimError as exc:
            raise SystemExit(format_error(exc)) from exc
        print(json.dumps(result.to_dict(), indent=2, default=str))
        if not result.succeeded:
            raise SystemExit(1)
        return

    if args.command == "eval":
        inputs = _load_inputs(args.input)
        evaluator = ExpressionEvaluator(ExecutionContext(trigger_inputs=inputs, flow_name="eval"))
        try:
            value = evaluator.evaluate(args.expression)
        except FlowsimError as exc:
            raise SystemExit(format_error(exc)) from exc
        print(json.dumps(value, indent=2, default=str))
        return

    if args.command == "serve":
        try:
            from .server import create_app
        except ImportError as exc:  # pragma: no cover - load-time guard
            raise SystemExit(f"Failed to import server: {exc}") from exc
        host = args.host or config.server_host
        port = args.port or config.server_port
        app = create_app()
        if args.dry_run:
            print(json.dumps({"status": "ready", "host": host, "port": port}, indent=2))
            return
        try:
            import uvicorn
        except ImportError as exc:  # pragma: no cover - runtime check
            raise SystemExit("uvicorn is required to run the server") from exc
        uvicorn.run(app, host=host, port=port)
        return


if __name__ == "__main__":  # pragma: no cover
    main()
