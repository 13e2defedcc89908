"""Command-line front-end for the ShopAI client.

Drives the same objects a mobile front-end would (AuthSession, APIClient,
AccountService and AnswerFlowEngine) against a live backend and renders
the responses with rich.

Usage::

    # Account status (registers this install on first use)
    shopai status

    # Browse
    shopai categories
    shopai questions sub_headphones
    shopai plans

    # Run a search with answers from a YAML file and/or the command line
    shopai search sub_headphones --answers answers.yaml --answer use_case=commuting

    # Forget the stored token (device id is kept)
    shopai sign-out

Answer files map question ids to values::

    use_case: commuting
    features: [noise_cancelling, wireless]   # multi-select, max 3
    budget: {min: 50, max: 150}              # range

On the command line, multi-select values are comma-separated
(``features=anc,wireless``) and ranges are written ``budget=50-150``.
Range questions left unanswered take their first preset.

Exit codes: 0 success, 1 failure, 2 free search limit reached.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml
from rich.console import Console
from rich.table import Table

from shopai.account import AccountService, detect_region
from shopai.client import APIClient
from shopai.config import ClientSettings, load_settings
from shopai.errors import APIServiceError, Unauthorized
from shopai.flow import AnswerFlowEngine
from shopai.models.answer import AnswerKind
from shopai.models.catalog import Question, QuestionType
from shopai.models.flow import FlowStatus
from shopai.models.search import RecommendationResponse
from shopai.session import AuthSession, JSONFileStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_BLOCKED = 2


# ---------------------------------------------------------------------------
# Answer parsing
# ---------------------------------------------------------------------------

def load_answers_file(path: Path | str) -> dict[str, Any]:
    """Load a YAML mapping of question id → answer value."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing answers file: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Answers file {path} must contain a mapping")
    return {str(k): v for k, v in data.items()}


def parse_answer_args(pairs: list[str]) -> dict[str, str]:
    """Parse repeated ``--answer id=value`` flags."""
    answers: dict[str, str] = {}
    for pair in pairs:
        qid, sep, value = pair.partition("=")
        if not sep or not qid:
            raise ValueError(f"Expected id=value, got '{pair}'")
        answers[qid.strip()] = value.strip()
    return answers


def coerce_answer(question: Question, raw: Any) -> Any:
    """Turn a YAML/CLI value into the wire form the question kind expects."""
    kind = question.answer_kind
    if kind == AnswerKind.CHOICES:
        if isinstance(raw, str):
            return [v.strip() for v in raw.split(",") if v.strip()]
        return [str(v) for v in raw]
    if kind == AnswerKind.RANGE:
        if isinstance(raw, str):
            low, sep, high = raw.partition("-")
            if not sep:
                raise ValueError(f"Range answer for '{question.id}' must look like 10-50")
            return {"min": float(low), "max": float(high)}
        return raw
    return str(raw)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def render_results(console: Console, result: RecommendationResponse, verbose: int) -> None:
    table = Table(title=f"Recommendations ({result.search_criteria.subcategory})")
    table.add_column("#", justify="right")
    table.add_column("Product")
    table.add_column("Price", justify="right")
    table.add_column("Match", justify="right")
    for product in result.products:
        table.add_row(
            str(product.rank),
            product.title,
            product.formatted_price,
            f"{product.match_score}%",
        )
    console.print(table)
    console.print(result.summary)

    if verbose:
        for product in result.products:
            console.print(f"\n[bold]{product.rank}. {product.title}[/]")
            console.print(product.explanation)
            for pro in product.pros:
                console.print(f"  [green]+[/] {pro}")
            for con in product.cons:
                console.print(f"  [red]-[/] {con}")
    if result.disclaimer:
        console.print(f"[dim]{result.disclaimer}[/]")


def render_question(console: Console, index: int, question: Question) -> None:
    required = "" if question.required else " [dim](optional)[/]"
    console.print(f"[bold cyan]{index + 1}.[/] {question.text}{required}")
    console.print(f"   [dim]id={question.id} type={question.type.value}[/]")
    for option in question.options or []:
        console.print(f"   - {option.value}: {option.label}")
    if question.type == QuestionType.RANGE and question.range_config is not None:
        cfg = question.range_config
        console.print(f"   range {cfg.min:g}-{cfg.max:g} step {cfg.step:g} {cfg.currency}")
        for preset in cfg.presets:
            console.print(f"   preset '{preset.label}': {preset.min:g}-{preset.max:g}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

async def _cmd_status(account: AccountService, console: Console, args) -> int:
    if not await account.initialize():
        console.print(f"[red]Error:[/] {account.last_error}")
        return EXIT_FAILED
    status = account.user_status
    console.print(f"User: {status.user_id}")
    console.print(f"Subscription: {status.subscription_status.value}")
    console.print(f"Free searches remaining: {account.free_searches_remaining}")
    console.print(f"Can search: {'yes' if account.can_search else 'no'}")
    return EXIT_OK


async def _cmd_categories(account: AccountService, console: Console, args) -> int:
    if not await account.initialize():
        console.print(f"[red]Error:[/] {account.last_error}")
        return EXIT_FAILED
    table = Table(title="Categories")
    table.add_column("Category")
    table.add_column("Subcategory id")
    table.add_column("Subcategory")
    for category in account.categories:
        for sub in category.subcategories:
            table.add_row(category.name, sub.id, sub.name)
    console.print(table)
    return EXIT_OK


async def _cmd_questions(
    client: APIClient, account: AccountService, console: Console, args
) -> int:
    question_set = await client.get_questions(args.subcategory, account.currency)
    console.print(
        f"[bold]{question_set.category_name} / {question_set.subcategory_name}[/]"
    )
    for index, question in enumerate(question_set.questions):
        render_question(console, index, question)
    return EXIT_OK


async def _cmd_plans(account: AccountService, console: Console, args) -> int:
    plans = await account.load_plans()
    if account.last_error is not None:
        console.print(f"[red]Error:[/] {account.last_error}")
        return EXIT_FAILED
    table = Table(title="Subscription plans")
    table.add_column("Plan")
    table.add_column("Price", justify="right")
    table.add_column("Features")
    for plan in plans:
        badge = f" [yellow]{plan.badge}[/]" if plan.badge else ""
        table.add_row(
            f"{plan.name}{badge}",
            f"{plan.formatted_price}{plan.period_label}",
            ", ".join(plan.features),
        )
    console.print(table)
    return EXIT_OK


async def _cmd_search(
    client: APIClient, account: AccountService, console: Console, args
) -> int:
    answers: dict[str, Any] = {}
    if args.answers:
        answers.update(load_answers_file(args.answers))
    answers.update(parse_answer_args(args.answer or []))

    if not await account.initialize():
        console.print(f"[red]Error:[/] {account.last_error}")
        return EXIT_FAILED

    flow = AnswerFlowEngine(client)
    await flow.load_questions(args.subcategory, account.currency)
    if flow.status == FlowStatus.FAILED:
        console.print(f"[red]Could not load questions:[/] {flow.error_message}")
        return EXIT_FAILED
    if flow.question_count == 0:
        console.print("[red]No questions for this subcategory.[/]")
        return EXIT_FAILED

    # Walk the flow exactly as a UI would: answer, check, advance
    while True:
        question = flow.current_question
        raw = answers.get(question.id)
        if raw is not None:
            flow.set_answer(question.id, coerce_answer(question, raw))
        elif question.type == QuestionType.RANGE and question.range_config is not None:
            flow.present_range(question.id)

        if not flow.can_advance:
            console.print(f"[red]Missing answer for required question:[/] {question.id}")
            render_question(console, flow.current_index, question)
            return EXIT_FAILED
        if flow.is_last_question:
            break
        flow.next()

    await flow.submit()
    if flow.status == FlowStatus.FAILED and isinstance(flow.last_error, Unauthorized):
        # Token expired between initialize() and submit: re-register once
        logger.info("Search unauthorized; re-registering and retrying")
        await account.register_device()
        await flow.submit()

    if flow.status == FlowStatus.BLOCKED:
        console.print(
            "[yellow]Free search limit reached.[/] "
            "Run 'shopai plans' to see subscription options."
        )
        return EXIT_BLOCKED
    if flow.status != FlowStatus.RESULTS:
        console.print(f"[red]Search failed:[/] {flow.error_message}")
        return EXIT_FAILED

    render_results(console, flow.result, args.verbose)
    return EXIT_OK


async def _cmd_sign_out(account: AccountService, console: Console, args) -> int:
    account.sign_out()
    console.print("Signed out.")
    return EXIT_OK


# ---------------------------------------------------------------------------
# CLI + async main
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shopai",
        description="Command-line client for the ShopAI recommendation backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--base-url",
        default=None,
        help="Backend base URL including /api (default: $SHOPAI_API_BASE_URL)",
    )
    parser.add_argument(
        "--state",
        type=Path, default=None,
        help="State file for token and device id (default: $SHOPAI_STATE_PATH)",
    )
    parser.add_argument(
        "--region",
        default=None,
        help="Locale region code, e.g. US or GB (default: $SHOPAI_REGION)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count", default=0,
        help="Increase verbosity (-v for explanations, -vv for debug logs)",
    )

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("status", help="Show account status")
    sub.add_parser("categories", help="List categories and subcategories")
    questions = sub.add_parser("questions", help="Show the questions of a subcategory")
    questions.add_argument("subcategory")
    sub.add_parser("plans", help="List subscription plans")
    search = sub.add_parser("search", help="Answer the questions and run a search")
    search.add_argument("subcategory")
    search.add_argument(
        "--answers",
        type=Path, default=None,
        help="YAML file mapping question id to answer",
    )
    search.add_argument(
        "--answer",
        action="append", default=[],
        metavar="ID=VALUE",
        help="Answer one question (repeatable)",
    )
    sub.add_parser("sign-out", help="Forget the stored auth token")
    return parser


def _settings_from_args(args: argparse.Namespace) -> ClientSettings:
    settings = load_settings()
    overrides: dict[str, Any] = {}
    if args.base_url:
        overrides["base_url"] = args.base_url.rstrip("/")
    if args.state is not None:
        overrides["state_path"] = args.state
    return dataclasses.replace(settings, **overrides) if overrides else settings


async def run(
    args: argparse.Namespace,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    console: Console | None = None,
) -> int:
    """Execute one CLI command; returns the process exit code."""
    console = console or Console()
    settings = _settings_from_args(args)
    try:
        session = AuthSession(JSONFileStore(settings.state_path))
    except (ValueError, OSError) as exc:
        logger.error("Cannot read state file %s: %s", settings.state_path, exc)
        console.print(f"[red]Invalid state file:[/] {exc}")
        return EXIT_FAILED

    region = currency = None
    if args.region:
        region, currency = detect_region(args.region)

    async with APIClient(session, settings, transport=transport) as client:
        account = AccountService(client, session, region=region, currency=currency)
        try:
            if args.command == "status":
                return await _cmd_status(account, console, args)
            elif args.command == "categories":
                return await _cmd_categories(account, console, args)
            elif args.command == "questions":
                return await _cmd_questions(client, account, console, args)
            elif args.command == "plans":
                return await _cmd_plans(account, console, args)
            elif args.command == "search":
                return await _cmd_search(client, account, console, args)
            elif args.command == "sign-out":
                return await _cmd_sign_out(account, console, args)
            else:
                raise ValueError(f"Unknown command: {args.command}")
        except APIServiceError as exc:
            console.print(f"[red]Error:[/] {exc}")
            return EXIT_FAILED
        except (ValueError, OSError) as exc:
            # Bad answers file / --answer syntax / answer shape
            console.print(f"[red]Invalid input:[/] {exc}")
            return EXIT_FAILED


def main(argv: list[str] | None = None) -> None:
    """Console-script entry point: ``shopai``."""
    args = build_parser().parse_args(argv)
    settings = load_settings()
    level = logging.DEBUG if args.verbose >= 2 else getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
