#!/usr/bin/env python

import sys
import logging

# The following lines replace many standard library modules with versions that
# use gevent for concurrency. This is NOT required by mailsender, but may help
# you avoid mistakes that can have harsh performance implications!
from gevent import monkey
monkey.patch_all()


logging.basicConfig(level=logging.DEBUG, stream=sys.stdout)


def _send(args, html):
    import mailsender
    from mailsender import TransportError

    mailsender.configure(host=args.host, port=args.port, secure=args.secure,
                         tls_verify=args.tls_verify,
                         connect_timeout=20.0, command_timeout=10.0,
                         data_timeout=20.0)
    try:
        result = mailsender.send(args.to, args.sender, args.subject, html)
    except TransportError as exc:
        print(exc, file=sys.stderr)
        return 1
    print(result.message_id)
    return 0


def main():
    from argparse import ArgumentParser, FileType

    parser = ArgumentParser(description='Sends an HTML message to a mail '
                                        'transfer agent.')
    parser.add_argument('--to', dest='to', metavar='ADDR', required=True,
                        help='Recipient address, or a comma-separated list')
    parser.add_argument('--from', dest='sender', metavar='ADDR',
                        required=True, help='Sender address')
    parser.add_argument('--subject', dest='subject', default='',
                        help='Message subject')
    parser.add_argument('html', type=FileType('r'), nargs='?',
                        default=sys.stdin,
                        help='File containing the HTML body, default stdin')

    group = parser.add_argument_group('Server Configuration')
    group.add_argument('--host', dest='host', default='localhost',
                       help='Mail server hostname')
    group.add_argument('--port', dest='port', type=int, default=25,
                       help='Mail server port')
    group.add_argument('--secure', dest='secure', action='store_true',
                       help='Encrypt immediately instead of using STARTTLS')
    group.add_argument('--tls-verify', dest='tls_verify', default='strict',
                       choices=['strict', 'relaxed'],
                       help='Server certificate validation')

    args = parser.parse_args()
    with args.html as html_file:
        html = html_file.read()
    sys.exit(_send(args, html))


if __name__ == '__main__':
    main()


# vim:et:fdm=marker:sts=4:sw=4:ts=4
