import csv
import sys
from decimal import Decimal

from ledger_engine import LedgerEngine
from ledger_records import RecordParser, RecordError

USAGE = "usage: ledger-replay <input.csv> > <output.csv>"

OUTPUT_PRECISION = Decimal(".0001")


class LedgerReplay:
    def __init__(self, filename, reject_overdraft=False, error_stream=None):
        self.filename = filename
        self.parser = RecordParser()
        self.engine = LedgerEngine(reject_overdraft=reject_overdraft, error_stream=error_stream)

    def read_transaction_data(self):
        if not self.filename:
            raise RuntimeError("no filename to read has been set. aborting.")
        # undecodable bytes survive as surrogates and the parser rejects that row alone
        with open(self.filename, newline="", encoding="utf-8", errors="surrogateescape") as file:
            csvreader = csv.reader(file)
            header_checked = False
            while True:
                try:
                    record = next(csvreader)
                except StopIteration:
                    break
                except csv.Error as e:
                    self.engine.skipped += 1
                    self.engine.error_log(f"error reading csv record at line {csvreader.line_num}: {e}")
                    continue

                if not header_checked:
                    header_checked = True
                    if self.parser.discover_field_order(record):
                        continue
                self.process_record(record)

    def process_record(self, record):
        if not record:
            return None
        try:
            event = self.parser.parse(record)
        except RecordError as e:
            self.engine.skipped += 1
            self.engine.error_log(f"{e} while attempting to parse row like: {record!r}")
            return str(e)
        return self.engine.apply(event)

    def get_account_totals(self):
        self.read_transaction_data()
        return {account.client_id: account for account in self.engine.snapshot()}

    def generate_output(self, out=None):
        self.read_transaction_data()
        rows = [
            [
                account.client_id,
                format_amount(account.available),
                format_amount(account.held),
                format_amount(account.total),
                str(account.locked).lower(),
            ]
            for account in self.engine.snapshot()
        ]
        csvwriter = csv.writer(out if out is not None else sys.stdout, lineterminator="\n")
        fieldnames = ["client", "available", "held", "total", "locked"]
        csvwriter.writerow(fieldnames)
        csvwriter.writerows(rows)


def format_amount(amount):
    return f"{amount.quantize(OUTPUT_PRECISION):f}"


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]
    if len(argv) != 1:
        print(USAGE, file=sys.stderr)
        return 2

    try:
        LedgerReplay(argv[0]).generate_output()
    except OSError as e:
        print(f"transaction error: cannot read {argv[0]!r}: {e.strerror or e}", file=sys.stderr)
        return 1
    except RuntimeError as e:
        print(f"transaction error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
