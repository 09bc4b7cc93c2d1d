# cli.py
import argparse
import logging
import sys

from .config import max_output_size_from_env
from .errors import QRCDecodeError
from .lyric_xml import extract_lyric_content
from .qrc import decode_file


class ArgumentParser(argparse.ArgumentParser):
    # usage errors exit with 1 like every other failure
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f'{self.prog}: error: {message}\n')


def build_parser():
    parser = ArgumentParser(
        prog='qrcdec',
        description='Decrypt and decompress a QQ Music QRC lyric file.')
    parser.add_argument('file', help='path to the .qrc file')
    parser.add_argument('--lyrics', action='store_true',
                        help='print only the LyricContent of the decoded XML')
    parser.add_argument('--max-output-size', type=int, default=None, metavar='N',
                        help='refuse to inflate more than N bytes (0 for no limit)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='log decoding steps to stderr')
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(levelname)s %(name)s: %(message)s')

    try:
        if args.max_output_size is None:
            max_output_size = max_output_size_from_env()
        else:
            max_output_size = args.max_output_size or None
        result = decode_file(args.file, max_output_size=max_output_size)
    except (QRCDecodeError, ValueError) as e:
        print(f'Error decoding: {e}', file=sys.stderr)
        return 1

    text = result.decode('utf-8', errors='replace')
    if args.lyrics:
        text = extract_lyric_content(text)
    print(text)
    return 0


if __name__ == '__main__':
    sys.exit(main())
