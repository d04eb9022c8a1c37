"""
Command-line interface for photo-ratings.

Commands:
    status: Show the rating status of every photo in a collection
    rate: Store a rating for one photo
    resolve: Resolve a stored-vs-embedded rating conflict
    apply: Write the authoritative ratings back to the store and the files
    import: Create stored ratings from embedded ratings
    serve: Run the JSON API

Example:
    $ photo-ratings status ~/Pictures/trip --conflicts-only
    $ photo-ratings rate ~/Pictures/trip IMG_0042.jpg 4
    $ photo-ratings apply ~/Pictures/trip --dry-run
"""

import sys
from pathlib import Path

import click

from photo_ratings.collection import RatingService
from photo_ratings.config import get_config, load_config
from photo_ratings.exceptions import PhotoRatingsError
from photo_ratings.models.enums import RatingStatus, Resolution
from photo_ratings.report import filter_identities, snapshot_to_dataframe
from photo_ratings.utils import setup_logging


def _parse_rating(value: str):
    if value.lower() in ("none", "null", "clear"):
        return None
    try:
        return int(value)
    except ValueError:
        raise click.BadParameter(f"{value!r} is not a rating (use 1-5 or 'none')")


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True), help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def main(ctx, config, verbose):
    """photo-ratings - Keep photo ratings in sync between the store and the files.

    Ratings live in three places: the collection's own database, the JPG's
    EXIF data and the RAW file's XMP sidecar. These commands show where
    they disagree and write the authoritative rating everywhere.
    """
    ctx.ensure_object(dict)

    config_obj = load_config(Path(config)) if config else get_config()
    log_level = 'DEBUG' if verbose else config_obj.logging.level
    setup_logging(log_level, format_string=config_obj.logging.format)

    ctx.obj['config'] = config_obj
    ctx.obj['service'] = RatingService(config_obj)
    ctx.call_on_close(ctx.obj['service'].shutdown)


@main.command()
@click.argument('folder', type=click.Path())
@click.option('--conflicts-only', is_flag=True, help='Only show photos with conflicts')
@click.option('--rating', '-r', type=click.IntRange(1, 5), multiple=True,
              help='Show photos with this stored rating (can specify multiple)')
@click.option('--unrated', is_flag=True, help='Show photos without a stored rating')
@click.pass_context
def status(ctx, folder, conflicts_only, rating, unrated):
    """Show the rating status of every photo in FOLDER.

    Without --rating or --unrated every photo is listed.
    """
    service = ctx.obj['service']

    try:
        snapshot = service.snapshot(folder)
    except PhotoRatingsError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if rating or unrated:
        shown = filter_identities(snapshot, rating, include_unrated=unrated, conflicts_only=conflicts_only)
    else:
        shown = filter_identities(snapshot, include_unrated=True, conflicts_only=conflicts_only)

    df = snapshot_to_dataframe(snapshot)
    df = df[df["identity"].isin(shown)]

    if df.empty:
        click.echo("No photos match.")
        return

    click.echo(df.drop(columns=["identity"]).to_string(index=False))
    click.echo(f"\n{len(df)} photo(s)")


@main.command()
@click.argument('folder', type=click.Path())
@click.argument('file_name')
@click.argument('rating')
@click.pass_context
def rate(ctx, folder, file_name, rating):
    """Store RATING (1-5, or 'none' to clear) for FILE_NAME in FOLDER."""
    value = _parse_rating(rating)

    try:
        record = ctx.obj['service'].rate(folder, file_name, value)
    except PhotoRatingsError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"{record.id}: {record.rating if record.rating is not None else 'unrated'}")


@main.command()
@click.argument('folder', type=click.Path())
@click.argument('file_name')
@click.option('--use', 'resolution', required=True,
              type=click.Choice([r.value for r in Resolution]),
              help='Which rating wins')
@click.option('--kind', type=click.Choice([RatingStatus.JPG_CONFLICT.value, RatingStatus.RAW_CONFLICT.value]),
              help='Conflict to resolve when the photo has both')
@click.pass_context
def resolve(ctx, folder, file_name, resolution, kind):
    """Resolve the rating conflict of FILE_NAME in FOLDER.

    Examples:
        photo-ratings resolve ~/Pictures/trip IMG_0042.jpg --use embedded
        photo-ratings resolve ~/Pictures/trip IMG_0042 --use stored --kind raw-conflict
    """
    service = ctx.obj['service']

    try:
        conflict = service.find_conflict(folder, file_name, kind)
        if conflict is None:
            click.echo(f"No rating conflict for {file_name}", err=True)
            sys.exit(1)

        record = service.resolve(folder, conflict, resolution)
    except PhotoRatingsError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if record is None:
        click.echo(f"Ignored conflict for {conflict.file_name}")
    else:
        click.echo(
            f"{conflict.file_name}: stored rating {record.rating} "
            f"(overrule={'yes' if record.overrule_file_rating else 'no'})"
        )


@main.command()
@click.argument('folder', type=click.Path())
@click.option('--dry-run', is_flag=True, help='Show the jobs without writing anything')
@click.pass_context
def apply(ctx, folder, dry_run):
    """Write the authoritative rating of every photo in FOLDER everywhere.

    Refuses to run while any photo has an unresolved conflict.
    """
    service = ctx.obj['service']

    try:
        if dry_run:
            aggregated = service.aggregate(folder)
        else:
            summary = service.apply(folder)
    except PhotoRatingsError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if dry_run:
        if aggregated.blocked:
            click.echo("Blocked: resolve rating conflicts first.", err=True)
            sys.exit(1)
        click.echo(f"Store authoritative: {len(aggregated.store_authoritative)}")
        for job in aggregated.store_authoritative:
            click.echo(f"  {job.identity} -> {job.rating} ({', '.join(t.value for t in job.targets)})")
        click.echo(f"JPG authoritative: {len(aggregated.jpg_authoritative)}")
        for job in aggregated.jpg_authoritative:
            click.echo(f"  {job.identity} -> {job.rating}")
        click.echo(f"RAW authoritative: {len(aggregated.raw_authoritative)}")
        for job in aggregated.raw_authoritative:
            click.echo(f"  {job.identity} -> {job.rating}")
        return

    if summary.blocked:
        click.echo("Blocked: resolve rating conflicts first.", err=True)
        sys.exit(1)

    click.echo(f"Database updates: {summary.db_updates_count}")
    click.echo(f"File updates: {summary.file_updates_count}")

    if summary.failures:
        click.echo(f"\nFailed ({len(summary.failures)}):")
        for failure in summary.failures[:10]:
            click.echo(f"  {failure.target}: {failure.reason}")
        if len(summary.failures) > 10:
            click.echo(f"  ... and {len(summary.failures) - 10} more")
        sys.exit(1)


@main.command('import')
@click.argument('folder', type=click.Path())
@click.pass_context
def import_ratings(ctx, folder):
    """Store the embedded rating of every photo in FOLDER that has none stored."""
    try:
        created = ctx.obj['service'].import_embedded(folder)
    except PhotoRatingsError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Imported {created} rating(s)")


@main.command()
@click.option('--host', help='Interface to bind (defaults to the configured host)')
@click.option('--port', type=int, help='Port to listen on (defaults to the configured port)')
@click.option('--debug', is_flag=True, help='Run Flask in debug mode')
@click.pass_context
def serve(ctx, host, port, debug):
    """Run the JSON API used by the organizer UI."""
    from photo_ratings.web import EXTENSION_KEY, create_app

    config = ctx.obj['config']
    app = create_app(config)

    host = host or config.web.host
    port = port or config.web.port
    click.echo(f"Serving on http://{host}:{port}")

    try:
        app.run(host=host, port=port, debug=debug)
    finally:
        app.extensions[EXTENSION_KEY].shutdown()


if __name__ == '__main__':
    main()
