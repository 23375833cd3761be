import asyncio

import click
import orjson

from . import __version__


def get_version():
    return __version__


def run_server(host="0.0.0.0", port=8000, reload=False):
    import uvicorn

    uvicorn.run("idx_ai_gateway.server.main:app", host=host, port=port, reload=reload)


async def _create_client(data):
    from idx_ai_gateway.config.settings import settings
    from idx_ai_gateway.database.session import (
        create_engine_for_url,
        create_session_factory,
        create_tables,
        session_scope,
    )
    from idx_ai_gateway.tenancy.client_manager import ClientManager

    engine = create_engine_for_url(settings.database_url)
    try:
        await create_tables(engine)
        async with session_scope(create_session_factory(engine)) as session:
            client = await ClientManager(session).create(data)
            return {"clientId": client.id, "apiKey": client.api_key}
    finally:
        await engine.dispose()


@click.group()
def cli():
    pass


@cli.command()
@click.option("--format", default="text", type=click.Choice(["text", "json"]))
def version(format):
    if format == "json":
        click.echo(orjson.dumps({"version": get_version()}).decode())
    else:
        click.echo(f"v{get_version()}")


@cli.command()
@click.option("--host", default="0.0.0.0")
@click.option("--port", default=8000)
@click.option("--reload", is_flag=True)
def serve(host, port, reload):
    run_server(host, port, reload)


@cli.command("create-client")
@click.option("--name", required=True)
@click.option("--email", required=True)
@click.option("--domain", required=True)
@click.option("--type", "idx_ai_type", required=True, type=click.Choice(["Prompt AI", "Translate AI", "Search AI"]))
@click.option("--translation-type", type=click.Choice(["basic", "advanced", "expert"]))
@click.option("--idxdb", type=click.Choice(["MongoDB", "MySQL", "MSSQL", "PostgreSQL"]))
@click.option("--plan", "plan_type", default="unlimited", type=click.Choice(["limited", "unlimited"]))
@click.option("--token-limit", type=int)
def create_client(name, email, domain, idx_ai_type, translation_type, idxdb, plan_type, token_limit):
    """Create a client and print its API key."""
    from idx_ai_gateway.exceptions import GatewayException

    data = {
        "name": name,
        "email": email,
        "domain": domain,
        "idx_ai_type": idx_ai_type,
        "translation_type": translation_type,
        "idxdb": idxdb,
        "plan_type": plan_type,
        "token_limit": token_limit,
    }
    try:
        created = asyncio.run(_create_client(data))
    except GatewayException as e:
        raise click.ClickException(e.message) from e
    click.echo(orjson.dumps(created).decode())


if __name__ == "__main__":
    cli()
