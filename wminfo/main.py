import json
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Optional, Sequence

from .config import Config, load_config, parse_args
from .diagnostics import Diagnostics
from .discovery import ReferenceDiscovery
from .errors import OperationCancelled, WminfoError, describe_fault
from .property_fetch import PropertyProjector
from .reports import REPORTS, ReportContext, ReportResult
from .schemas import SCHEMAS, TABLE_ORDER
from .vmware_client import connect, disconnect
from .writer.csv_writer import write_csv
from .writer.excel_writer import write_excel
from .writer.text_writer import render_result

REQUIRED_SETTINGS = (
    ("server", "--url o WMINFO_URL"),
    ("user", "--user o WMINFO_USERNAME"),
    ("password", "--password o WMINFO_PASSWORD"),
)


def setup_logging(debug: bool) -> logging.Logger:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    return logging.getLogger("wminfo")


def _validate_config(config: Config, logger: logging.Logger) -> bool:
    missing = [label for attr, label in REQUIRED_SETTINGS if not getattr(config, attr)]
    if missing:
        logger.error("Faltan parametros requeridos: %s", ", ".join(missing))
    return not missing


def _mask_user(user: str) -> str:
    if not user:
        return ""
    name, at, domain = user.partition("@")
    return f"{name[:2]}***{at}{domain}"


def _install_cancel_handlers(cancel_event: threading.Event) -> None:
    def _handler(signum, _frame):
        cancel_event.set()
        raise OperationCancelled(signal.Signals(signum).name)

    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(signum, _handler)
        except ValueError:
            # solo se puede instalar desde el hilo principal
            pass


def _export(config: Config, result: ReportResult, diagnostics: Diagnostics, logger: logging.Logger) -> None:
    if config.out_path:
        out_path = Path(config.out_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        write_excel(out_path, SCHEMAS, result.tables, TABLE_ORDER, about=result.about)
        logger.info("Export completado: %s", out_path)
        _write_diagnostics(out_path, diagnostics, logger)

    if config.csv_dir:
        csv_dir = Path(config.csv_dir)
        csv_dir.mkdir(parents=True, exist_ok=True)
        write_csv(csv_dir, SCHEMAS, result.tables, TABLE_ORDER)
        logger.info("CSVs generados en: %s", csv_dir)


def _write_diagnostics(out_path: Path, diagnostics: Diagnostics, logger: logging.Logger) -> None:
    diagnostics_path = out_path.with_name("diagnostics.json")
    payload = json.dumps(diagnostics.to_dict(), indent=2, sort_keys=True)
    try:
        diagnostics_path.write_text(payload, encoding="utf-8")
    except OSError as exc:
        logger.warning("No se pudo escribir %s: %s", diagnostics_path, exc)


def _print_summary(diagnostics: Diagnostics, logger: logging.Logger) -> None:
    for section in diagnostics.sections():
        stats = diagnostics.get_section_stats(section)
        errors = " ".join(f"{name}={count}" for name, count in sorted(stats.errors.items()))
        logger.debug(
            "Resumen %s: attempted=%s success=%s %s",
            section,
            stats.attempted_count,
            stats.success_count,
            errors or "sin errores",
        )


def _wait_for_console(seconds: int, cancel_event: threading.Event) -> None:
    if seconds <= 0:
        return
    print()
    print(f"Waiting for {seconds} seconds, then exit")
    sys.stdout.flush()
    try:
        cancel_event.wait(seconds)
    except OperationCancelled:
        pass


def run(config: Config, logger: logging.Logger, cancel_event: Optional[threading.Event] = None) -> int:
    cancel_event = cancel_event or threading.Event()
    diagnostics = Diagnostics()
    diagnostics.set_runtime_config(
        {
            "env_file_used": config.env_file_used,
            "server": config.server,
            "insecure": config.insecure,
            "datacenter": config.datacenter,
            "command": config.command,
        }
    )

    session = None
    exit_code = 1
    try:
        logger.info("Conectando a %s (user: %s)", config.server, _mask_user(config.user))
        session = connect(
            server=config.server,
            user=config.user,
            password=config.password,
            insecure=config.insecure,
            cancel_event=cancel_event,
            logger=logger,
        )
        logger.debug("Conectado a %s. Datacenter: %s", session.host, config.datacenter or "<default>")

        context = ReportContext(
            session=session,
            config=config,
            logger=logger,
            diagnostics=diagnostics,
            discovery=ReferenceDiscovery(session, config.datacenter, logger=logger),
            projector=PropertyProjector(session, diagnostics=diagnostics, logger=logger),
        )
        result = REPORTS[config.command](context)

        render_result(result, SCHEMAS, TABLE_ORDER)
        _export(config, result, diagnostics, logger)

        if config.command == "show" and not result.details:
            logger.warning("Ninguna VM coincide con %s", config.selector)
        else:
            exit_code = 0

        if result.console_issued:
            _wait_for_console(config.console_wait, cancel_event)
    except (ConnectionError, WminfoError) as exc:
        logger.error("%s", exc)
    except Exception as exc:
        logger.error("Fallo el reporte %s: %s", config.command, describe_fault(exc))
    finally:
        _print_summary(diagnostics, logger)
        try:
            disconnect(session)
        except Exception as exc:
            logger.debug("Error cerrando la sesion: %s", exc)

    return exit_code


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logger = setup_logging(bool(args.debug))

    try:
        config = load_config(args)
    except Exception as exc:
        logger.error(str(exc))
        return 2

    if config.debug:
        logger.setLevel(logging.DEBUG)

    if not _validate_config(config, logger):
        return 2

    if config.env_file_used:
        logger.info("Cargadas variables desde: %s", config.env_file_used)

    cancel_event = threading.Event()
    _install_cancel_handlers(cancel_event)
    return run(config, logger, cancel_event)


if __name__ == "__main__":
    sys.exit(main())
