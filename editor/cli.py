"""
Abstract Editor CLI
===================

Command line access to the editing session against a running API.

COMMANDS:
- show:        Print an abstract and the actions it currently offers
- transitions: Print the workflow transition table
- submit:      Submit an abstract
- withdraw:    Withdraw a submitted abstract
- reactivate:  Move a withdrawn abstract back into preparation
- create:      Create an abstract in a conference from a JSON record

USAGE:
    python -m editor [--api-url URL] [COMMAND] [ARGS]
"""
import argparse
import dataclasses
import json
import sys
from typing import List, Optional

from .config import EditorConfig
from .contracts.base import AbstractState
from .figures import FigureUpload
from .logging_config import setup_logging
from .models.entities import Abstract
from .session import EditorSession
from .transport.client import EditorApiClient
from .workflow.state_machine import is_transition_legal


def _print_outcome(session: EditorSession, result) -> int:
    message = session.messages.current
    if result.is_success:
        print(f"[*] {message}" if message else "[*] Done.")
        return 0
    print(f"[!] {result.error.message}")
    return 1


def _print_abstract(session: EditorSession):
    abstract = session.abstract
    print(f"ABSTRACT {abstract.uuid}")
    print("=" * 60)
    print(f"Title: {abstract.title or '-'}")
    print(f"State: {abstract.state}")
    if abstract.topic:
        print(f"Topic: {abstract.topic}")

    if abstract.authors:
        print("\nAuthors:")
        for author in abstract.authors:
            numbers = author.format_affiliations()
            print(f"  {author.format_name()}" + (f" [{numbers}]" if numbers else ""))

    if abstract.affiliations:
        print("\nAffiliations:")
        for number, affiliation in enumerate(abstract.affiliations, start=1):
            print(f"  {number}. {affiliation.format()}")

    if abstract.figures:
        print("\nFigures:")
        for figure in abstract.figures:
            print(f"  {figure.name}: {figure.caption or ''}")

    actions = sorted(action.value for action in session.available_actions)
    print(f"\nActions: {', '.join(actions) if actions else 'none'}")


def cmd_show(session: EditorSession, args) -> int:
    opened = session.open()
    if opened.is_failure:
        print(f"[!] {opened.error.message}")
        return 1
    _print_abstract(session)
    return 0


def cmd_transitions(args) -> int:
    states = list(AbstractState)
    width = max(len(state.value) for state in states) + 2

    print("WORKFLOW TRANSITIONS (row = prior, column = candidate)")
    print("=====================================================")
    print(" " * width + "".join(state.value.ljust(width) for state in states))

    print("(new)".ljust(width) + "".join(
        ("yes" if is_transition_legal(False, None, candidate) else "-").ljust(width)
        for candidate in states
    ))
    for prior in states:
        print(prior.value.ljust(width) + "".join(
            ("yes" if is_transition_legal(True, prior, candidate) else "-").ljust(width)
            for candidate in states
        ))
    return 0


def cmd_change_state(session: EditorSession, args) -> int:
    opened = session.open()
    if opened.is_failure:
        print(f"[!] {opened.error.message}")
        return 1

    print(f"[*] Abstract {session.abstract.uuid} is {session.prior_state}")
    operation = getattr(session, args.command)
    return _print_outcome(session, operation())


def cmd_create(session: EditorSession, args) -> int:
    try:
        with open(args.json, encoding="utf-8") as f:
            record = json.load(f)
        candidate = Abstract.from_record(record)
        figure = FigureUpload.from_path(args.figure, caption=args.caption) if args.figure else None
    except (OSError, ValueError) as e:
        # MarshallingError is a ValueError, as are JSON decode errors
        print(f"[!] Cannot read input: {e}")
        return 1

    opened = session.open()
    if opened.is_failure:
        print(f"[!] {opened.error.message}")
        return 1

    print(f"[*] Creating abstract in conference {session.conference.name or args.conference}")
    result = session.save_abstract(candidate, figure=figure)
    code = _print_outcome(session, result)
    if code == 0:
        print(f"[*] Abstract id: {session.abstract.uuid}")
    return code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="editor", description="Conference abstract editor")
    parser.add_argument("--api-url", default=None, help="Base URL of the abstracts API")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command")

    show_parser = subparsers.add_parser("show", help="Show an abstract")
    show_parser.add_argument("--abstract", required=True, help="Abstract id")

    subparsers.add_parser("transitions", help="Print the transition table")

    for command, text in (
        ("submit", "Submit an abstract"),
        ("withdraw", "Withdraw an abstract"),
        ("reactivate", "Reactivate a withdrawn abstract"),
    ):
        state_parser = subparsers.add_parser(command, help=text)
        state_parser.add_argument("--abstract", required=True, help="Abstract id")

    create_parser = subparsers.add_parser("create", help="Create an abstract from JSON")
    create_parser.add_argument("--conference", required=True, help="Conference id")
    create_parser.add_argument("--json", required=True, help="Path to the abstract record")
    create_parser.add_argument("--figure", default=None, help="Figure file to attach")
    create_parser.add_argument("--caption", default=None, help="Figure caption")

    return parser


def main(argv: Optional[List[str]] = None, client: Optional[EditorApiClient] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 2

    if args.command == "transitions":
        return cmd_transitions(args)

    config = EditorConfig.from_env()
    if args.api_url:
        config = dataclasses.replace(config, api_base_url=args.api_url)
    setup_logging(config.log_level, log_file=args.log_file)

    client = client or EditorApiClient.from_config(config)
    with client:
        session = EditorSession(
            client,
            conference_id=getattr(args, "conference", None),
            abstract_id=getattr(args, "abstract", None),
            config=config
        )
        if args.command == "show":
            return cmd_show(session, args)
        if args.command == "create":
            return cmd_create(session, args)
        return cmd_change_state(session, args)


if __name__ == "__main__":
    sys.exit(main())
