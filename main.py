import enum

from rich.pretty import pprint

from structopt import *

__prog__ = "fetch"


class Protocol(enum.Enum):
    http = enum.auto()
    https = enum.auto()
    ssh = enum.auto()
    ftp = enum.auto()


@record
class Options:
    host: Option[str] = Info(descr="host name", mandatory=True)
    port: Option[int] = Info(descr="port number", default=80)
    type: Option[Protocol] = Info(descr="protocol type", default=Protocol.http)
    gzip: Option[bool] = Info(short=None, descr="gzip when transfer")


if __name__ == '__main__':
    pprint(from_args(shell=True).to(Options))
