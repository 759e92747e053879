# cli.py
from __future__ import annotations

import sys
from typing import Callable, List, Optional

import click

from triggerci.catalog import ClassMarkerPolicy, discover
from triggerci.jenkins import JenkinsClient, JenkinsError
from triggerci.model import BuildServer, Catalog
from triggerci.selector import InvalidJobName, NoPipelinesFound, select
from triggerci.settings import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TAIL_MAX_DURATION,
    Settings,
    markers_from_string,
)
from triggerci.stop import StopToken
from triggerci.tail import tail as tail_build
from triggerci.tracker import BuildTracker, TrackingCancelled, TrackingError, TriggerError
from triggerci.ui.console import Console, get_console, set_console


def make_server(settings: Settings) -> BuildServer:
    return JenkinsClient(
        settings.jenkins_url,
        user=settings.user,
        token=settings.token,
        timeout=settings.request_timeout,
    )


def _server(ctx: click.Context, settings: Settings) -> BuildServer:
    # Tests swap the factory through ctx.obj
    factory: Callable[[Settings], BuildServer] = ctx.obj.get("server_factory", make_server)
    return factory(settings)


def connection_options(f):
    """Options shared by every command that talks to the build server."""
    options = [
        click.option("--url", "jenkins_url", envvar="TRIGGERCI_JENKINS_URL", required=True,
                     help="Jenkins base URL (env: TRIGGERCI_JENKINS_URL)"),
        click.option("--user", envvar="TRIGGERCI_JENKINS_USER", default=None,
                     help="User name for basic auth (env: TRIGGERCI_JENKINS_USER)"),
        click.option("--token", envvar="TRIGGERCI_JENKINS_TOKEN", default=None,
                     help="API token for basic auth (env: TRIGGERCI_JENKINS_TOKEN)"),
        click.option("--request-timeout", envvar="TRIGGERCI_REQUEST_TIMEOUT", type=float,
                     default=DEFAULT_REQUEST_TIMEOUT, show_default=True,
                     help="Per-request network timeout in seconds"),
        click.option("--pipeline-markers", envvar="TRIGGERCI_PIPELINE_MARKERS", default=None,
                     help="Comma separated class name markers that identify pipeline jobs (default: Job)"),
        click.option("-f", "--filter", "filter_text", default=None,
                     help="Filters all the available jobs by those that contain the given text"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def load_catalog(ctx: click.Context, settings: Settings, filter_text: Optional[str]):
    server = _server(ctx, settings)
    catalog = discover(
        server,
        server.list_root_jobs(),
        filter_text=filter_text,
        is_pipeline=ClassMarkerPolicy(settings.pipeline_markers),
    )
    get_console().print_debug(f"Found {len(catalog)} pipeline(s)")
    return server, catalog


def start_jobs(
    server: BuildServer,
    catalog: Catalog,
    names: List[str],
    settings: Settings,
    tail: bool,
) -> None:
    """Trigger each job in turn, report its build and optionally tail it."""
    console = get_console()
    tracker = BuildTracker(server, poll_interval=settings.poll_interval)
    sink = sys.stdout.buffer
    for name in names:
        stop = StopToken(timeout=settings.track_timeout)
        with stop.handle_signals():
            handle = tracker.trigger_and_track(catalog[name], stop=stop)
            build = handle.build
            console.print_build_started(name, build.url, build.console_url)
            if tail:
                console.print_tailing(name, build.number)
                tail_build(
                    server,
                    handle,
                    sink,
                    poll_interval=settings.poll_interval,
                    max_duration=settings.tail_max_duration,
                    stop=stop,
                )
                if stop.stopped:
                    raise TrackingCancelled(name, 0, "Stopped while tailing the log")


def _fail(ctx: click.Context, code: int = 1) -> None:
    if ctx.obj.get("debug", False):
        import traceback
        traceback.print_exc()
    sys.exit(code)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """triggerci: start Jenkins pipelines and follow the builds they produce."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@connection_options
@click.argument("names", nargs=-1)
@click.option("-t", "--tail", is_flag=True, default=False,
              help="Tails the build log to the current terminal")
@click.option("--poll-interval", envvar="TRIGGERCI_POLL_INTERVAL", type=float,
              default=DEFAULT_POLL_INTERVAL, show_default=True,
              help="Seconds between polls for the new build and for log output")
@click.option("--timeout", "track_timeout", envvar="TRIGGERCI_TRACK_TIMEOUT", type=float,
              default=0, show_default=True,
              help="Give up waiting for the new build after this many seconds (0 waits forever)")
@click.option("--tail-max-duration", envvar="TRIGGERCI_TAIL_MAX_DURATION", type=float,
              default=DEFAULT_TAIL_MAX_DURATION, show_default=True,
              help="Stop tailing after this many seconds")
@click.pass_context
def start(ctx, jenkins_url, user, token, request_timeout, pipeline_markers, filter_text,
          names, tail, poll_interval, track_timeout, tail_max_duration):
    """
    Starts one or more pipelines.

    \b
    Examples:
      triggerci start foo             # start a pipeline
      triggerci start                 # select the pipeline to start
      triggerci start -t              # select, start and tail the log
    """
    console = get_console()
    settings = Settings(
        jenkins_url=jenkins_url,
        user=user,
        token=token,
        request_timeout=request_timeout,
        poll_interval=poll_interval,
        track_timeout=track_timeout or None,
        tail_max_duration=tail_max_duration,
        pipeline_markers=markers_from_string(pipeline_markers),
    )

    try:
        server, catalog = load_catalog(ctx, settings, filter_text)
        selected = select(catalog, names)
        start_jobs(server, catalog, selected, settings, tail)

    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except InvalidJobName as e:
        console.print_error(
            "Unknown pipeline",
            f"No pipeline named {e.name!r}. Valid names are:",
            details=e.valid_names or ["(none)"],
            suggestion="Pass one of the names above, or run without names to pick one interactively.",
        )
        _fail(ctx)
    except NoPipelinesFound as e:
        console.print_error(
            "No pipelines found",
            str(e),
            suggestion="Check --filter and --pipeline-markers, or list jobs with:\n  triggerci jobs",
        )
        _fail(ctx)
    except TriggerError as e:
        console.print_error(
            "Could not start pipeline",
            str(e),
            suggestion="Check that the job exists and that your user may build it.",
        )
        _fail(ctx)
    except TrackingCancelled as e:
        console.print_info(f"\nStopped: {e}")
        _fail(ctx, code=130)
    except TrackingError as e:
        console.print_error(
            "Could not find the started build",
            str(e),
            suggestion=f"The build may still be running; check {jenkins_url}",
        )
        _fail(ctx)
    except JenkinsError as e:
        console.print_error(
            "Jenkins request failed",
            str(e),
            suggestion=f"Verify the URL and credentials for {jenkins_url}.",
        )
        _fail(ctx)
    except click.Abort:
        raise
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


cli.add_command(start, name="pipeline")


@cli.command()
@connection_options
@click.pass_context
def jobs(ctx, jenkins_url, user, token, request_timeout, pipeline_markers, filter_text):
    """List the pipelines that can be started."""
    console = get_console()
    settings = Settings(
        jenkins_url=jenkins_url,
        user=user,
        token=token,
        request_timeout=request_timeout,
        pipeline_markers=markers_from_string(pipeline_markers),
    )
    try:
        _, catalog = load_catalog(ctx, settings, filter_text)
    except JenkinsError as e:
        console.print_error(
            "Jenkins request failed",
            str(e),
            suggestion=f"Verify the URL and credentials for {jenkins_url}.",
        )
        _fail(ctx)
        return
    console.print_names(sorted(catalog))


if __name__ == "__main__":
    cli()
