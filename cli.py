#!/usr/bin/env python3
"""
Google Voice Takeout Merger - CLI Interface

Merges the per-call and per-message files of a Google Voice Takeout export into
one HTML transcript per conversation, with optional CSV index and SMS Backup &
Restore XML exports.
"""

import logging
import traceback
from pathlib import Path

import click
from pydantic import ValidationError

from core.errors import MergerError
from core.merger import ConversationMerger
from core.phone_book import MatchStrategy, PhoneBook
from core.unified_config import MergeConfig
from utils.console import display_merge_summary
from utils.logging_setup import add_file_logging, get_log_level, setup_logging

logger = logging.getLogger(__name__)

# CLI option name -> MergeConfig field
OPTION_FIELDS = {
    'input_dir': 'input_dir',
    'output_dir': 'output_dir',
    'force': 'force',
    'contacts': 'contacts_file',
    'strategy': 'match_strategy',
    'suffix_length': 'suffix_length',
    'ignore_call_logs': 'ignore_call_logs',
    'ignore_orphan_call_logs': 'ignore_orphan_call_logs',
    'ignore_media': 'ignore_media',
    'ignore_voicemails': 'ignore_voicemails',
    'ignore_orphan_voicemails': 'ignore_orphan_voicemails',
    'tolerate_missing_participants': 'tolerate_missing_participants',
    'generate_csv': 'generate_csv',
    'generate_xml': 'generate_xml',
    'own_number': 'own_number',
    'phones_vcf': 'phones_vcf',
    'log_filename': 'log_filename',
}


def build_config(ctx_obj: dict, options: dict) -> MergeConfig:
    """
    Build the merge configuration from CLI options.

    Options left at their defaults are not passed so GVOICE_MERGE_* environment
    variables and .env files still apply.
    """
    overrides = {}
    for option, field_name in OPTION_FIELDS.items():
        value = options.get(option)
        if value is None or value is False:
            continue
        overrides[field_name] = value

    for option in ('verbose', 'debug', 'log_level'):
        if ctx_obj.get(option):
            overrides[option] = ctx_obj[option]

    if options.get('no_progress'):
        overrides['show_progress'] = False

    return MergeConfig(**overrides)


def summary_sections(stats, phone_book: PhoneBook) -> dict:
    sections = stats.summary()
    sections["Phone Book"] = {
        "Strategy": phone_book.describe_strategy(),
        "Contact numbers": len(phone_book),
        "Skipped cards": len(phone_book.load_warnings),
        "Matched numbers": phone_book.stats.matched_count,
        "Unknown numbers": phone_book.stats.unknown_count,
    }
    if stats.output_files:
        sections["Exports"] = {path.name: str(path) for path in stats.output_files}
    return sections


@click.group()
@click.option(
    '--verbose', '-v',
    is_flag=True,
    default=False,
    help="Enable verbose logging (INFO level)"
)
@click.option(
    '--debug',
    is_flag=True,
    default=False,
    help="Enable debug logging (DEBUG level) and tracebacks on errors"
)
@click.option(
    '--log-level',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
    default=None,
    help="Logging level (default: WARNING)"
)
@click.pass_context
def cli(ctx, verbose, debug, log_level):
    """Google Voice Takeout Merger."""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    ctx.obj['debug'] = debug
    ctx.obj['log_level'] = log_level.upper() if log_level else None


@cli.command()
@click.option(
    '--input-dir', '-i',
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    help="Directory containing the export files (Takeout/Voice/Calls)"
)
@click.option(
    '--output-dir', '-o',
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    help="Directory receiving the merged conversations"
)
@click.option('--force', '-f', is_flag=True, help="Overwrite the output directory if it exists")
@click.option(
    '--contacts', '-c',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="VCF address book used to resolve phone numbers to names"
)
@click.option(
    '--strategy',
    type=click.Choice([strategy.value for strategy in MatchStrategy], case_sensitive=False),
    default=None,
    help="Phone number matching strategy (default: exact)"
)
@click.option(
    '--suffix-length',
    type=click.IntRange(min=1),
    default=None,
    help="Shortest suffix accepted by the suffix strategy"
)
@click.option('--ignore-call-logs', is_flag=True, help="Skip received, placed and missed call logs")
@click.option('--ignore-orphan-call-logs', is_flag=True, help="Skip conversations made only of call logs")
@click.option('--ignore-media', is_flag=True, help="Skip media files")
@click.option('--ignore-voicemails', is_flag=True, help="Skip voicemails and recordings")
@click.option('--ignore-orphan-voicemails', is_flag=True, help="Skip conversations made only of voicemails")
@click.option(
    '--tolerate-missing-participants',
    is_flag=True,
    help="Group conversations without participants under 'unknown' instead of failing"
)
@click.option('--generate-csv', is_flag=True, help="Generate a CSV index (logs/index.csv)")
@click.option('--generate-xml', is_flag=True, help="Generate an SMS Backup & Restore export (sms.xml)")
@click.option('--own-number', type=str, default=None, help="Your Google Voice number")
@click.option(
    '--phones-vcf',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Phones.vcf used to detect your own number (default: next to the input directory)"
)
@click.option('--log-filename', type=str, default=None, help="Log filename inside <output>/logs")
@click.option('--no-progress', is_flag=True, help="Disable progress bars")
@click.pass_context
def merge(ctx, **options):
    """Merge a Google Voice export into per-conversation transcripts."""
    ctx.ensure_object(dict)
    debug = ctx.obj.get('debug', False)

    try:
        config = build_config(ctx.obj, options)
    except ValidationError as e:
        click.echo(f"❌ Configuration error: {e}", err=True)
        ctx.exit(1)

    log_level = get_log_level(config.effective_log_level)
    setup_logging(log_level=log_level)
    logger.debug(f"Configuration: {config.to_dict()}")

    try:
        phone_book = PhoneBook(config.contacts_file, config.match_strategy, config.suffix_length)
        merger = ConversationMerger(config, phone_book)

        merger.prepare_output_dir()
        if config.log_file_path:
            add_file_logging(config.log_file_path, log_level)

        click.echo(f"🔄 Merging {config.input_dir} into {config.output_dir}", err=True)
        stats = merger.run()

    except (MergerError, OSError) as e:
        logger.error(f"Merge failed: {e}")
        click.echo(f"❌ Merge failed: {e}", err=True)
        if debug:
            traceback.print_exc()
        ctx.exit(1)

    display_merge_summary(summary_sections(stats, phone_book))


if __name__ == '__main__':
    cli()
