"""Command line interface for operating an Evolution API gateway."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Optional, TextIO

from . import commands
from .client import INTEGRATIONS, PRESENCES, STATUS_TYPES, ApiError, EvolutionClient, dumps
from .config import ConfigurationError, GatewaySettings, load_configuration, resolve_settings, validate_settings
from .dispatch import BulkSendCommand
from .models import BulkSendRequest
from .normalize import load_numbers_file, parse_candidates
from .progress import StreamProgressReporter
from .report import render_report, write_report
from .validation import ValidationError

LOGGER = logging.getLogger(__name__)

ClientFactory = Callable[[GatewaySettings], EvolutionClient]


def _add_instance(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--instance", required=True, help="Name of the gateway instance to use")


def _add_numbers(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--numbers", help="Numbers separated by commas or newlines")
    source.add_argument("--numbers-file", help="Text, CSV or Excel file holding the numbers")
    parser.add_argument("--column", help="Spreadsheet column holding the numbers")


def build_parser(prog: Optional[str] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description="Operate an Evolution API WhatsApp gateway")
    parser.add_argument("--config", help="Path to a configuration file (YAML or JSON)")
    parser.add_argument("--base-url", help="Gateway base URL, e.g. http://localhost:8080")
    parser.add_argument("--api-key", help="Gateway API key")
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="command")

    bulk = subparsers.add_parser("bulk-send", help="Send the same text to many numbers, one at a time")
    _add_instance(bulk)
    _add_numbers(bulk)
    bulk.add_argument("--text", required=True, help="Message text")
    bulk.add_argument("--delay-ms", type=int, default=0, help="Pause between consecutive messages")
    bulk.add_argument("--validate", action="store_true", help="Skip numbers that are not on WhatsApp")
    bulk.add_argument("--report", help="Also write the report to this file (.txt, .csv, .tsv or .xlsx)")
    bulk.set_defaults(handler=_bulk_send)

    text = subparsers.add_parser("send-text", help="Send a text message")
    _add_instance(text)
    text.add_argument("--number", required=True)
    text.add_argument("--text", required=True)
    text.set_defaults(handler=_send_text)

    media = subparsers.add_parser("send-media", help="Send an image, video or document")
    _add_instance(media)
    media.add_argument("--number", required=True)
    media.add_argument("--file", required=True, help="Path of the file to upload")
    media.add_argument("--caption")
    media.add_argument("--ptv", action="store_true", help="Send a video as a round video note")
    media.set_defaults(handler=_send_media)

    audio = subparsers.add_parser("send-audio", help="Send a voice note")
    _add_instance(audio)
    audio.add_argument("--number", required=True)
    audio.add_argument("--audio", required=True, help="Audio URL or base64 payload")
    audio.set_defaults(handler=_send_audio)

    sticker = subparsers.add_parser("send-sticker", help="Send a sticker")
    _add_instance(sticker)
    sticker.add_argument("--number", required=True)
    sticker.add_argument("--sticker", required=True, help="Sticker URL or base64 payload")
    sticker.set_defaults(handler=_send_sticker)

    location = subparsers.add_parser("send-location", help="Send a location pin")
    _add_instance(location)
    location.add_argument("--number", required=True)
    location.add_argument("--name", required=True)
    location.add_argument("--address", required=True)
    location.add_argument("--latitude", type=float, required=True)
    location.add_argument("--longitude", type=float, required=True)
    location.set_defaults(handler=_send_location)

    contact = subparsers.add_parser("send-contact", help="Send a contact card")
    _add_instance(contact)
    contact.add_argument("--number", required=True)
    contact.add_argument("--full-name", required=True)
    contact.add_argument("--wuid", required=True, help="WhatsApp id of the shared contact")
    contact.add_argument("--phone-number", required=True)
    contact.add_argument("--organization")
    contact.add_argument("--email")
    contact.add_argument("--url")
    contact.set_defaults(handler=_send_contact)

    reaction = subparsers.add_parser("send-reaction", help="React to a message")
    _add_instance(reaction)
    reaction.add_argument("--remote-jid", required=True)
    reaction.add_argument("--message-id", required=True)
    reaction.add_argument("--reaction", required=True, help="Emoji, or an empty string to remove")
    reaction.add_argument("--from-me", action="store_true")
    reaction.set_defaults(handler=_send_reaction)

    poll = subparsers.add_parser("send-poll", help="Send a poll")
    _add_instance(poll)
    poll.add_argument("--number", required=True)
    poll.add_argument("--name", required=True, help="Poll question")
    poll.add_argument("--option", action="append", default=[], help="Poll option (repeat for each)")
    poll.add_argument("--selectable-count", default="1")
    poll.set_defaults(handler=_send_poll)

    listing = subparsers.add_parser("send-list", help="Send an interactive list")
    _add_instance(listing)
    listing.add_argument("--number", required=True)
    listing.add_argument("--title", required=True)
    listing.add_argument("--description", default="")
    listing.add_argument("--button-text", required=True)
    listing.add_argument("--footer-text", default="")
    listing.add_argument("--sections", required=True, help="JSON array of sections, or @path to a JSON file")
    listing.set_defaults(handler=_send_list)

    status = subparsers.add_parser("send-status", help="Post a status/story")
    _add_instance(status)
    status.add_argument("--type", choices=STATUS_TYPES, default="text")
    status.add_argument("--content", required=True, help="Text, or media URL for media statuses")
    status.add_argument("--caption")
    status.add_argument("--background-color")
    status.add_argument("--font")
    status.add_argument("--all-contacts", action="store_true")
    status.add_argument("--jid", action="append", default=[], help="Recipient JID (repeat for each)")
    status.set_defaults(handler=_send_status)

    check = subparsers.add_parser("check-numbers", help="Print the raw WhatsApp lookup for numbers")
    _add_instance(check)
    _add_numbers(check)
    check.set_defaults(handler=_check_numbers)

    validate = subparsers.add_parser("validate-numbers", help="Split numbers into valid and invalid")
    _add_instance(validate)
    _add_numbers(validate)
    validate.add_argument("--show", choices=["all", "valid", "invalid"], default="all")
    validate.set_defaults(handler=_validate_numbers)

    create = subparsers.add_parser("create-instance", help="Create a gateway instance")
    create.add_argument("name")
    create.add_argument("--integration", choices=INTEGRATIONS, default="WHATSAPP-BAILEYS")
    create.add_argument("--no-qrcode", dest="qrcode", action="store_false")
    create.set_defaults(handler=_create_instance)

    instances = subparsers.add_parser("instances", help="List and manage instances")
    instances.add_argument(
        "action",
        choices=["list", "show", "state", "connect", "restart", "logout", "delete"],
    )
    instances.add_argument("name", nargs="?", help="Instance name (all actions except list)")
    instances.add_argument("--number", help="Phone number to request a pairing code for (connect)")
    instances.set_defaults(handler=_instances)

    presence = subparsers.add_parser("set-presence", help="Set the instance presence")
    presence.add_argument("name")
    presence.add_argument("presence", choices=PRESENCES)
    presence.set_defaults(handler=_set_presence)

    settings = subparsers.add_parser("settings", help="Show the resolved gateway settings")
    settings.set_defaults(handler=None)

    return parser


def main(
    argv: list[str] | None = None,
    *,
    client_factory: ClientFactory = EvolutionClient,
    stdout: Optional[TextIO] = None,
    stderr: Optional[TextIO] = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING))

    if not args.command:
        parser.print_help(file=stdout)
        return 2

    try:
        config = load_configuration(args.config) if args.config else {}
        settings = resolve_settings(config, base_url=args.base_url, api_key=args.api_key, timeout=args.timeout)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=stderr)
        return 2

    if args.command == "settings":
        return _show_settings(settings, stdout)

    try:
        validate_settings(settings)
    except ConfigurationError as exc:
        print(f"Configuration Required: {exc}", file=stderr)
        return 2

    with client_factory(settings) as client:
        try:
            return args.handler(client, args, stdout, stderr)
        except ApiError as exc:
            LOGGER.debug("Gateway request failed", exc_info=True)
            status = f" (HTTP {exc.status})" if exc.status else ""
            print(f"Error{status}: {exc.message}", file=stderr)
        except (ValidationError, FileNotFoundError, ValueError) as exc:
            print(f"Error: {exc}", file=stderr)
    return 1


# ----------------------------------------------------------------------
# Handlers
# ----------------------------------------------------------------------

def _read_numbers(args: argparse.Namespace) -> str:
    if args.numbers_file:
        return load_numbers_file(args.numbers_file, column=args.column)
    return args.numbers


def _done(stdout: TextIO, title: str, response=None) -> int:
    print(title, file=stdout)
    if response not in (None, ""):
        LOGGER.info("Response: %s", dumps(response))
    return 0


def _bulk_send(client: EvolutionClient, args: argparse.Namespace, stdout: TextIO, stderr: TextIO) -> int:
    request = BulkSendRequest(
        instance_name=args.instance,
        numbers=_read_numbers(args),
        text=args.text,
        delay_ms=args.delay_ms,
        validate=args.validate,
    )
    command = BulkSendCommand(client, reporter=StreamProgressReporter(stderr))
    report = command.run(request)
    if report is None:  # pragma: no cover - single-threaded CLI never overlaps runs
        return 0

    print(render_report(report), file=stdout)
    if args.report:
        destination = write_report(args.report, report)
        LOGGER.info("Report written to %s", Path(destination).resolve())
    return 1 if report.has_failures else 0


def _send_text(client, args, stdout, stderr) -> int:
    return _done(stdout, "Message sent", client.send_text(args.instance, args.number, args.text))


def _send_media(client, args, stdout, stderr) -> int:
    if args.ptv:
        return _done(stdout, "Video note sent", client.send_ptv(args.instance, args.number, args.file))
    return _done(stdout, "Media sent", client.send_media(args.instance, args.number, args.file, args.caption))


def _send_audio(client, args, stdout, stderr) -> int:
    return _done(stdout, "Audio sent", client.send_whatsapp_audio(args.instance, args.number, args.audio))


def _send_sticker(client, args, stdout, stderr) -> int:
    return _done(stdout, "Sticker sent", client.send_sticker(args.instance, args.number, args.sticker))


def _send_location(client, args, stdout, stderr) -> int:
    response = client.send_location(
        args.instance,
        args.number,
        name=args.name,
        address=args.address,
        latitude=args.latitude,
        longitude=args.longitude,
    )
    return _done(stdout, "Location sent", response)


def _send_contact(client, args, stdout, stderr) -> int:
    card = {
        "fullName": args.full_name,
        "wuid": args.wuid,
        "phoneNumber": args.phone_number,
        "organization": args.organization,
        "email": args.email,
        "url": args.url,
    }
    return _done(stdout, "Contact sent", client.send_contact(args.instance, args.number, [card]))


def _send_reaction(client, args, stdout, stderr) -> int:
    response = client.send_reaction(
        args.instance,
        remote_jid=args.remote_jid,
        from_me=args.from_me,
        message_id=args.message_id,
        reaction=args.reaction,
    )
    return _done(stdout, "Reaction sent", response)


def _send_poll(client, args, stdout, stderr) -> int:
    options = commands.parse_poll_options("\n".join(args.option))
    response = client.send_poll(
        args.instance,
        args.number,
        name=args.name,
        selectable_count=commands.parse_int(args.selectable_count, "Selectable count"),
        values=options,
    )
    return _done(stdout, "Poll sent", response)


def _send_list(client, args, stdout, stderr) -> int:
    raw = args.sections
    if raw.startswith("@"):
        raw = Path(raw[1:]).read_text(encoding="utf-8")
    response = client.send_list(
        args.instance,
        args.number,
        title=args.title,
        description=args.description,
        button_text=args.button_text,
        footer_text=args.footer_text,
        sections=commands.parse_sections(raw),
    )
    return _done(stdout, "List message sent", response)


def _send_status(client, args, stdout, stderr) -> int:
    response = client.send_status(
        args.instance,
        type=args.type,
        content=args.content,
        all_contacts=args.all_contacts,
        caption=args.caption,
        background_color=args.background_color,
        font=commands.parse_int(args.font, "Font") if args.font else None,
        status_jid_list=commands.split_lines("\n".join(args.jid)),
    )
    return _done(stdout, "Status/Story sent", response)


def _check_numbers(client, args, stdout, stderr) -> int:
    response = commands.check_numbers(client, args.instance, _read_numbers(args))
    print(dumps(response), file=stdout)
    return 0


def _validate_numbers(client, args, stdout, stderr) -> int:
    numbers = _read_numbers(args)
    candidates = parse_candidates(numbers)
    if candidates.duplicates:
        StreamProgressReporter(stderr).duplicates_removed(candidates.duplicates, len(candidates))

    result = commands.validate_numbers(client, args.instance, numbers)
    if args.show == "valid":
        print(result.valid_numbers(), file=stdout)
    elif args.show == "invalid":
        print(result.invalid_numbers(), file=stdout)
    else:
        print(result.render(), file=stdout)
    print(f"Validation complete: Valid: {len(result.valid)}, Invalid: {len(result.invalid)}", file=stderr)
    return 0


def _create_instance(client, args, stdout, stderr) -> int:
    response = client.create_instance(args.name, qrcode=args.qrcode, integration=args.integration)
    code = commands.pairing_code(response.get("qrcode") if isinstance(response, dict) else None)
    if code:
        print(code, file=stdout)
    return _done(stdout, "Instance created", response)


def _instances(client, args, stdout, stderr) -> int:
    if args.action == "list":
        for instance in client.list_instances():
            print(f"{instance['name']}\t{instance['connectionStatus'] or 'Unknown'}\t{instance['id']}", file=stdout)
        return 0

    if not args.name:
        raise commands.CommandInputError(f"'instances {args.action}' needs an instance name")

    if args.action == "show":
        records = client.fetch_instances(instance_name=args.name)
        for record in records if isinstance(records, list) else [records]:
            if isinstance(record, dict):
                print(commands.describe_instance(record), file=stdout)
        return 0
    if args.action == "state":
        print(dumps(client.connection_state(args.name)), file=stdout)
        return 0
    if args.action == "connect":
        code = commands.pairing_code(client.instance_connect(args.name, args.number))
        if not code:
            print("No QR code or pairing code received", file=stderr)
            return 1
        print(code, file=stdout)
        return 0
    if args.action == "restart":
        return _done(stdout, "Instance restarted", client.instance_restart(args.name))
    if args.action == "logout":
        return _done(stdout, "Instance logged out", client.instance_logout(args.name))
    return _done(stdout, "Instance deleted", client.instance_delete(args.name))


def _set_presence(client, args, stdout, stderr) -> int:
    return _done(stdout, f"Presence set to {args.presence}", client.set_presence(args.name, args.presence))


def _show_settings(settings: GatewaySettings, stdout: TextIO) -> int:
    print(f"Base URL: {settings.base_url or 'Not configured'}", file=stdout)
    print(f"API Key: {'Configured' if settings.api_key else 'Not configured'}", file=stdout)
    print(f"Timeout: {settings.timeout:g}s", file=stdout)
    try:
        validate_settings(settings)
    except ConfigurationError as exc:
        print(f"Status: Configuration Error - {exc}", file=stdout)
        return 2

    base = settings.base_url.rstrip("/")
    print("Status: All settings are valid", file=stdout)
    print(f"Swagger UI: {base}/docs", file=stdout)
    print(f"Manager UI: {base}/manager", file=stdout)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
