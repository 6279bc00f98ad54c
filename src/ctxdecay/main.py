from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config.loader import load_settings
from .config.models import Settings
from .decay.ages import compute_turn_ages
from .decay.engine import apply_context_decay, find_summary_candidates
from .decay.summary_store import clear_summary_store, load_summary_store, summary_store_path
from .session.models import Message
from .session.store import SessionStore

app = typer.Typer(add_completion=False, help="ctxdecay: graduated context decay for agent session transcripts.")
console = Console()


@app.callback()
def _main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log decay decisions (DEBUG)."),
):
    log = logging.getLogger("ctxdecay")
    log.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(isinstance(h, RichHandler) for h in log.handlers):
        log.addHandler(RichHandler(console=Console(stderr=True), show_path=False))


def _resolve_cwd(cwd: Path | None) -> Path:
    cwd = Path(str(cwd or Path.cwd())).expanduser()
    if not cwd.is_absolute():
        cwd = (Path.cwd() / cwd).resolve()
    else:
        cwd = cwd.resolve()
    if not cwd.is_dir():
        raise typer.BadParameter(f"--cwd must be an existing directory, got: {cwd}")
    return cwd


def _open_session(session: str, settings: Settings) -> SessionStore:
    """Accept either a transcript path or a session id from the sessions directory."""
    p = Path(session).expanduser()
    if p.suffix == ".jsonl" or p.exists():
        if not p.is_file():
            raise typer.BadParameter(f"Session transcript not found: {p}")
        return SessionStore.from_path(p.resolve())
    store = SessionStore.open(session_id=session, directory=settings.sessions_dir)
    if not store.path.is_file():
        raise typer.BadParameter(f"Unknown session '{session}' (looked for {store.path})")
    return store


def _preview(m: Message, limit: int = 60) -> str:
    text = m.text().replace("\n", " ")
    if m.has_block_content:
        tags = [b.type for b in m.content if b.type != "text"]  # type: ignore[union-attr]
        if tags:
            text = f"[{', '.join(tags)}] {text}"
    text = text if len(text) <= limit else text[: limit - 3] + "..."
    return escape(text)


_session_opt = typer.Option(..., "--session", "-s", help="Transcript path (*.jsonl) or session id.")
_cwd_opt = typer.Option(None, "--cwd", help="Project directory for config discovery. Defaults to current directory.")
_config_opt = typer.Option(None, "--config", help="Explicit config file (JSON or YAML).")


@app.command()
def ages(
    session: str = _session_opt,
    cwd: Path = _cwd_opt,
    config: Path = _config_opt,
):
    """Show the turn age of every message in a session."""
    settings = load_settings(cwd=_resolve_cwd(cwd), explicit_path=config)
    store = _open_session(session, settings)
    turn_ages = compute_turn_ages(store.messages)

    table = Table(title=f"Turn ages: {store.session_id}")
    table.add_column("#", justify="right")
    table.add_column("role")
    table.add_column("age", justify="right")
    table.add_column("content")
    for i, m in enumerate(store.messages):
        table.add_row(str(i), m.role, str(turn_ages[i]), _preview(m))
    console.print(table)


@app.command()
def decay(
    session: str = _session_opt,
    cwd: Path = _cwd_opt,
    config: Path = _config_opt,
    strip_thinking: int = typer.Option(None, "--strip-thinking", help="Override stripThinkingAfterTurns."),
    summarize_after: int = typer.Option(None, "--summarize-after", help="Override summarizeToolResultsAfterTurns."),
    strip_after: int = typer.Option(None, "--strip-after", help="Override stripToolResultsAfterTurns."),
    max_messages: int = typer.Option(None, "--max-messages", help="Override maxContextMessages."),
    output: Path = typer.Option(None, "--output", "-o", help="Write the decayed transcript to this JSONL file."),
):
    """Apply context decay to a session and report what changed."""
    settings = load_settings(cwd=_resolve_cwd(cwd), explicit_path=config)
    cfg = settings.decay.merged(
        strip_thinking_after_turns=strip_thinking,
        summarize_tool_results_after_turns=summarize_after,
        strip_tool_results_after_turns=strip_after,
        max_context_messages=max_messages,
    )
    store = _open_session(session, settings)
    summaries = load_summary_store(store.path)
    res = apply_context_decay(store.messages, cfg, summaries)

    lines = [
        f"session: {store.session_id}",
        f"file: {store.path}",
        f"config: {cfg.to_obj() or '(all thresholds disabled)'}",
        f"config_file: {settings.loaded_from or '(none)'}",
        f"cached_summaries: {len(summaries)}",
        f"messages: {len(store.messages)} -> {len(res.messages)}",
        f"thinking_stripped: {res.thinking_stripped}",
        f"summarized: {res.summarized}",
        f"tool_results_stripped: {res.tool_results_stripped}",
        f"dropped_by_cap: {res.dropped_by_cap}",
    ]
    if res.repair is not None:
        lines.append(f"repair: {res.repair.dropped_orphans} orphaned, {res.repair.dropped_duplicates} duplicate")
    if not res.changed:
        lines.append("(no change)")
    console.print(Panel.fit("\n".join(lines), title="Decay"))

    if output is not None:
        out_path = output.expanduser().resolve()
        if out_path == store.path.resolve():
            raise typer.BadParameter("--output must differ from the source transcript.")
        if out_path.exists():
            out_path.unlink()
        SessionStore.from_path(out_path).extend(res.messages)
        console.print(f"Wrote {len(res.messages)} messages to {out_path}")


@app.command()
def candidates(
    session: str = _session_opt,
    cwd: Path = _cwd_opt,
    config: Path = _config_opt,
    summarize_after: int = typer.Option(None, "--summarize-after", help="Override summarizeToolResultsAfterTurns."),
    strip_after: int = typer.Option(None, "--strip-after", help="Override stripToolResultsAfterTurns."),
):
    """List tool results that are due for summarization but have no cached summary."""
    settings = load_settings(cwd=_resolve_cwd(cwd), explicit_path=config)
    cfg = settings.decay.merged(
        summarize_tool_results_after_turns=summarize_after,
        strip_tool_results_after_turns=strip_after,
    )
    store = _open_session(session, settings)
    if cfg.summarize is None:
        console.print("Summarization is disabled (summarizeToolResultsAfterTurns not set).")
        raise typer.Exit(code=0)
    summaries = load_summary_store(store.path)
    idxs = find_summary_candidates(store.messages, cfg, summaries)
    if not idxs:
        console.print("No tool results need a summary.")
        raise typer.Exit(code=0)
    for i in idxs:
        m = store.messages[i]
        console.print(f"- [bold]{i}[/bold] {escape(m.tool_name or '')} ({escape(m.tool_call_id or '?')}) {_preview(m)}")


@app.command()
def summaries(
    session: str = _session_opt,
    cwd: Path = _cwd_opt,
    config: Path = _config_opt,
):
    """Show cached tool-result summaries for a session."""
    settings = load_settings(cwd=_resolve_cwd(cwd), explicit_path=config)
    store = _open_session(session, settings)
    entries = load_summary_store(store.path)
    console.print(Panel.fit(f"file: {summary_store_path(store.path)}\nentries: {len(entries)}", title="Summaries"))
    if not entries:
        raise typer.Exit(code=0)
    table = Table()
    table.add_column("#", justify="right")
    table.add_column("tokens", justify="right")
    table.add_column("model")
    table.add_column("at")
    table.add_column("summary")
    for idx in sorted(entries):
        e = entries[idx]
        table.add_row(
            str(idx),
            f"{e.original_token_estimate} -> {e.summary_token_estimate}",
            escape(e.model),
            e.summarized_at,
            escape(e.summary),
        )
    console.print(table)


@app.command("clear-summaries")
def clear_summaries(
    session: str = _session_opt,
    cwd: Path = _cwd_opt,
    config: Path = _config_opt,
):
    """Delete the cached summaries file for a session."""
    settings = load_settings(cwd=_resolve_cwd(cwd), explicit_path=config)
    store = _open_session(session, settings)
    clear_summary_store(store.path)
    console.print(f"Cleared {summary_store_path(store.path)}")
