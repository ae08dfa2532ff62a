from .exceptions import PrintError, PrintConfigError, PrintExportError, PrintBlockedError
from .export import PageSetup, export_pdf, export_png, make_printer, send_to_printer, ensure_printable
from .worker import ExportWorker, WorkerSignals
