import json
import logging
import os

import click

from rider.agent import DeliveryAgent
from rider.client import DeliveryClient, DeliveryClientError
from rider.offline_queue import OfflineActionQueue

TOKEN_FILE = ".rider_token.json"


def _load_session(state_dir):
    path = os.path.join(state_dir, TOKEN_FILE)
    if not os.path.exists(path):
        raise click.ClickException("Not signed in. Run `signin` first.")
    with open(path, encoding="utf-8") as fh:
        return json.load(fh)


@click.group()
@click.option("--base-url", envvar="PAPS_API_URL", default="http://localhost:5000", show_default=True)
@click.option("--state-dir", envvar="PAPS_RIDER_DIR", default=".", show_default=True)
@click.option("-v", "--verbose", is_flag=True)
@click.pass_context
def cli(ctx, base_url, state_dir, verbose):
    """PAPS rider command line."""
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING)
    ctx.obj = {"base_url": base_url, "state_dir": state_dir}


def _agent(ctx):
    state = _load_session(ctx.obj["state_dir"])
    client = DeliveryClient(ctx.obj["base_url"], state["token"])
    queue = OfflineActionQueue.for_rider(state["rider_id"], ctx.obj["state_dir"])
    return DeliveryAgent(client, queue)


@cli.command()
@click.argument("email")
@click.password_option(confirmation_prompt=False)
@click.pass_context
def signin(ctx, email, password):
    client = DeliveryClient(ctx.obj["base_url"])
    try:
        user = client.signin(email, password)
    except DeliveryClientError as exc:
        raise click.ClickException(str(exc))

    os.makedirs(ctx.obj["state_dir"], exist_ok=True)
    with open(os.path.join(ctx.obj["state_dir"], TOKEN_FILE), "w", encoding="utf-8") as fh:
        json.dump({"token": client.token, "rider_id": user.get("delivery_person_id") or user["id"]}, fh)
    click.echo(f"Signed in as {user['email']}")


@cli.command()
@click.option("--status", default=None)
@click.pass_context
def orders(ctx, status):
    agent = _agent(ctx)
    try:
        data = agent.client.orders(status=status)
    except DeliveryClientError as exc:
        raise click.ClickException(str(exc))
    for order in data["orders"]:
        click.echo(f"{order['id']:>5}  {order['code']:<16} {order['status']:<18} {order['customer_address'] or ''}")


@cli.command()
@click.argument("order_id", type=int)
@click.pass_context
def accept(ctx, order_id):
    agent = _agent(ctx)
    try:
        order = agent.accept(order_id)
    except DeliveryClientError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Order {order_id} accepted" if order else f"Offline: order {order_id} queued")


@cli.command()
@click.argument("order_id", type=int)
@click.argument("status")
@click.pass_context
def status(ctx, order_id, status):
    agent = _agent(ctx)
    try:
        order = agent.update_status(order_id, status)
    except DeliveryClientError as exc:
        raise click.ClickException(str(exc))
    click.echo(f"Order {order_id} -> {status}" if order else f"Offline: status {status} queued")


@cli.command()
@click.option("--watch", is_flag=True, help="Keep polling until interrupted.")
@click.option("--interval", default=30, show_default=True)
@click.pass_context
def sync(ctx, watch, interval):
    agent = _agent(ctx)
    sent = agent.poll(interval=interval, iterations=None if watch else 1)
    click.echo(f"{sent} queued action(s) sent, {len(agent.queue)} pending")


if __name__ == "__main__":
    cli()
