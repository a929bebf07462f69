import sys
import logging
import argparse

import signtrust.exc as s_exc
import signtrust.common as s_common
import signtrust.lib.config as s_config
import signtrust.lib.output as s_output
import signtrust.lib.certcmd as s_certcmd

logger = logging.getLogger(__name__)

descr = '''
Manage trusted certificates and signing identities.

Your signing certificate and private key are typically stored in
~/.gem/gem-public_cert.pem and ~/.gem/gem-private_key.pem respectively.

To build a certificate for signing:

  python -m signtrust.tools.cert --build you@example

If you already have an RSA key, or are creating a new certificate for an
existing key:

  python -m signtrust.tools.cert --build you@example --private-key /path/to/key.pem

To trust a certificate, list trusted certificates, or remove one:

  python -m signtrust.tools.cert --add /path/to/cert.pem
  python -m signtrust.tools.cert --list [cert_subject_substring]
  python -m signtrust.tools.cert --remove cert_subject_substring

To sign another author's certificate:

  python -m signtrust.tools.cert --sign /path/to/other_cert.pem
'''

def getArgParser():

    pars = argparse.ArgumentParser(prog='signtrust.tools.cert', description=descr,
                                   formatter_class=argparse.RawDescriptionHelpFormatter)

    pars.add_argument('-a', '--add', action='append', default=[], metavar='CERT',
                      help='Add a trusted certificate.')
    pars.add_argument('-l', '--list', action='append', default=[], nargs='?', const='', metavar='FILTER',
                      help='List trusted certificates where the subject contains FILTER.')
    pars.add_argument('-r', '--remove', action='append', default=[], metavar='FILTER',
                      help='Remove trusted certificates where the subject contains FILTER.')
    pars.add_argument('-b', '--build', action='append', default=[], metavar='EMAIL_ADDR',
                      help='Build private key and self-signed certificate for EMAIL_ADDR.')
    pars.add_argument('-C', '--certificate', metavar='CERT',
                      help='Signing certificate for --sign.')
    pars.add_argument('-K', '--private-key', metavar='KEY',
                      help='Key for --sign or --build.')
    pars.add_argument('-s', '--sign', action='append', default=[], metavar='CERT',
                      help='Signs CERT with the key from -K and the certificate from -C.')

    pars.add_argument('--trust-dir', help='Directory for trusted certificates (default ~/.gem/trust).')
    pars.add_argument('--home', help='Directory holding the default signing certificate and key (default ~/.gem).')
    pars.add_argument('--config', help='Path to a YAML configuration file.')
    pars.add_argument('--log-level', default=None, help='Specify the log level.',
                      choices=('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'))

    return pars

def getConf(opts):
    '''
    Get a validated Config from the parsed arguments, environment variables and config file.
    '''
    conf = s_config.Config()

    if opts.trust_dir is not None:
        conf['trust:dir'] = opts.trust_dir

    if opts.home is not None:
        conf['home'] = opts.home

    conf.setConfFromEnvs()

    if opts.config is not None:
        conf.setConfFromFile(s_common.reqpath(opts.config))

    conf.reqConfValid()
    return conf

def main(argv, outp=None):

    if outp is None:  # pragma: no cover
        outp = s_output.stdout

    pars = getArgParser()
    opts = pars.parse_args(argv)

    s_common.setlogging(logger, defval=opts.log_level)

    cmdopts = {
        'add': opts.add,
        'remove': opts.remove,
        'list': opts.list,
        'build': opts.build,
        'sign': opts.sign,
        'certificate': opts.certificate,
        'private_key': opts.private_key,
    }

    if not any(cmdopts[name] for name in s_certcmd.oporder):
        outp.printf(pars.format_help())
        return 0

    try:
        conf = getConf(opts)
        cmdopts = s_certcmd.reqValidOpts(cmdopts)
    except s_exc.SigErr as e:
        outp.printf(f'ERROR: {e.get("mesg")}')
        return 1

    cmd = s_certcmd.CertCmd(cmdopts, conf=conf, outp=outp)
    return cmd.run()

def _main():  # pragma: no cover
    sys.exit(main(sys.argv[1:]))

if __name__ == '__main__':  # pragma: no cover
    _main()
