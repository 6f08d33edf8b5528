import logging

import click

import regpeek
from regpeek.oci.errors import InvalidReference


@click.group()
@click.option("-d", "--debug", help="Debug output", is_flag=True)
def cli(debug: bool):
    if debug:
        logging.basicConfig(level=logging.DEBUG)


def credentials(func):
    func = click.option("-p", "--password", help="Password", default=None)(func)
    func = click.option("-u", "--username", help="Username", default=None)(func)
    return func


@cli.command("image-id")
@click.argument("image")
@credentials
@click.pass_context
def image_id(ctx, image: str, username: str | None, password: str | None):
    """Print the image id (config digest) of a single-platform image."""
    result = regpeek.get_image_id(image, username=username, password=password)
    if not result:
        click.echo(f"Could not determine the image id of {image}", err=True)
        ctx.exit(1)
    click.echo(result)


@cli.command("manifest-list")
@click.argument("image")
@credentials
@click.pass_context
def manifest_list(ctx, image: str, username: str | None, password: str | None):
    """Print the per-platform manifest digests of an image, one per line."""
    digests = regpeek.get_manifest_list_digests(
        image, username=username, password=password
    )
    if not digests:
        click.echo(f"Could not determine the manifests of {image}", err=True)
        ctx.exit(1)
    for digest in digests:
        click.echo(digest)


@cli.command()
@click.argument("image")
def normalize(image: str):
    """Print the normalized form of an image reference."""
    try:
        click.echo(regpeek.normalize_reference(image))
    except InvalidReference as e:
        raise click.BadParameter(str(e), param_hint="IMAGE") from e


if __name__ == "__main__":
    cli()
