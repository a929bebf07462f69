'''
Run a batch of trust store and signing operations in a fixed order.
'''
import logging

import signtrust.exc as s_exc
import signtrust.lib.const as s_const
import signtrust.lib.config as s_config
import signtrust.lib.output as s_output
import signtrust.lib.backend as s_backend
import signtrust.lib.signing as s_signing
import signtrust.lib.identity as s_identity
import signtrust.lib.trustdir as s_trustdir

logger = logging.getLogger(__name__)

# the order operations are run in, regardless of the order they were requested in
oporder = ('add', 'remove', 'list', 'build', 'sign')

# errors reported for a single item without stopping the batch
itemerrs = (s_exc.SigErr, OSError, ValueError)

def _reqStrList(name, valu):
    if valu is None:
        return []

    if not isinstance(valu, (list, tuple)):
        raise s_exc.BadArg(mesg=f'Option {name} must be a list, got {valu!r}', name=name)

    for item in valu:
        if not isinstance(item, str):
            raise s_exc.BadArg(mesg=f'Option {name} values must be strings, got {item!r}', name=name)

    return list(valu)

def _reqPathList(name, valu):
    valu = _reqStrList(name, valu)
    for item in valu:
        if not item:
            raise s_exc.BadArg(mesg=f'Option {name} values must not be empty', name=name)
    return valu

def _reqNameList(name, valu):
    valu = _reqStrList(name, valu)
    for item in valu:
        s_identity.reqValidName(item)
    return valu

def _reqPathOrNone(name, valu):
    if valu is None:
        return None

    if not isinstance(valu, str) or not valu:
        raise s_exc.BadArg(mesg=f'Option {name} must be a path, got {valu!r}', name=name)

    return valu

optvalidators = {
    'add': _reqPathList,
    'remove': _reqStrList,
    'list': _reqStrList,
    'build': _reqNameList,
    'sign': _reqPathList,
    'certificate': _reqPathOrNone,
    'private_key': _reqPathOrNone,
}

def reqValidOpts(opts):
    '''
    Validate and normalize the operations requested for a CertCmd.

    Args:
        opts (dict): A dictionary which may contain the keys ``add``, ``remove``,
                     ``list``, ``build`` and ``sign`` (lists of strings) and
                     ``certificate`` and ``private_key`` (paths).

    Raises:
        BadArg: If an option is unknown or has an invalid value.

    Returns:
        dict: A new dictionary with every option key present.
    '''
    for name in opts.keys():
        if name not in optvalidators:
            raise s_exc.BadArg(mesg=f'Unknown option: {name}', name=name)

    return {name: func(name, opts.get(name)) for (name, func) in optvalidators.items()}

class CertCmd:
    '''
    Run the add, remove, list, build and sign operations of a single invocation.

    Args:
        opts (dict): The operations to run, as returned by reqValidOpts().
        conf (signtrust.lib.config.Config): A validated configuration.
        outp (signtrust.lib.output.OutPut): The output buffer.
        backend (signtrust.lib.backend.Backend): Optional crypto backend.

    Notes:
        Operations always run in the order add, remove, list, build, sign.  A failed
        item is reported and the batch continues.  Failing to load the default signing
        certificate or key stops the sign operations only.
    '''

    def __init__(self, opts, conf=None, outp=None, backend=None):

        if conf is None:
            conf = s_config.Config()
            conf.reqConfValid()

        if outp is None:
            outp = s_output.stdout

        if backend is None:
            backend = s_backend.Backend(numbits=conf.get('key:bits', s_const.KEY_BITS),
                                        days=conf.get('cert:days', s_const.CERT_DAYS),
                                        digest=conf.get('digest', s_const.DIGEST))

        self.opts = reqValidOpts(opts)
        self.conf = conf
        self.outp = outp
        self.backend = backend

        self.home = conf.get('home')
        self.trustdir = s_trustdir.TrustDir(path=conf.get('trust:dir'), backend=backend)

        self.failed = False

    def run(self):
        '''
        Run the requested operations.

        Returns:
            int: 0 if every operation succeeded, 1 otherwise.
        '''
        try:
            issuer_cert = self._loadOptCert()
            issuer_key = self._loadOptKey()
        except s_exc.SigErr as e:
            self._printErr(e.get('path'), e)
            return 1

        for path in self.opts['add']:
            self._runItem(path, self.addCert, path)

        for filt in self.opts['remove']:
            self._runItem(filt, self.delCerts, filt)

        for filt in self.opts['list']:
            self._runItem(filt, self.listCerts, filt)

        for name in self.opts['build']:
            self._runItem(name, self.build, name, key=issuer_key)

        if self.opts['sign']:

            if issuer_cert is None:
                issuer_cert = self._loadDefault('--certificate', s_identity.getDefaultCertPath,
                                                s_identity.loadDefaultCert)
                if issuer_cert is None:
                    return 1

            if issuer_key is None:
                issuer_key = self._loadDefault('--private-key', s_identity.getDefaultKeyPath,
                                               s_identity.loadDefaultKey)
                if issuer_key is None:
                    return 1

            for path in self.opts['sign']:
                self._runItem(path, self.sign, path, issuer_cert, issuer_key)

        if self.failed:
            return 1
        return 0

    def addCert(self, path):
        cert = s_identity.loadCertPath(path, backend=self.backend)
        self.trustdir.addCert(cert)
        self.outp.printf(f"Added '{s_backend.getSubjText(cert)}'")

    def delCerts(self, filt):
        for ent in self.trustdir.delCerts(filt):
            self.outp.printf(f"Removed '{s_backend.getSubjText(ent.cert)}'")
        self._printWarnings()

    def listCerts(self, filt):
        for cert in self.trustdir.getCerts(filt):
            self.outp.printf(s_backend.getSubjText(cert))
        self._printWarnings()

    def build(self, name, key=None):
        cert, key, certpath, keypath = s_identity.buildIdentity(name, key=key, backend=self.backend)
        self.outp.printf(f'Certificate: {certpath}')
        self.outp.printf(f'Private Key: {keypath}')
        self.outp.printf("Don't forget to move the key file to somewhere private!")

    def sign(self, path, issuer_cert, issuer_key):
        s_signing.signCertFile(path, issuer_cert, issuer_key, backend=self.backend)
        self.outp.printf(f"Signed '{path}'")

    def _runItem(self, item, func, *args, **kwargs):
        try:
            func(*args, **kwargs)
        except itemerrs as e:
            logger.debug('Operation %s failed for %s: %s', func.__name__, item, e)
            self._printErr(item, e)

    def _loadOptCert(self):
        path = self.opts['certificate']
        if path is None:
            return None
        return s_identity.loadCertPath(path, backend=self.backend)

    def _loadOptKey(self):
        path = self.opts['private_key']
        if path is None:
            return None
        return s_identity.loadKeyPath(path, backend=self.backend)

    def _loadDefault(self, optname, pathfunc, loadfunc):
        path = pathfunc(home=self.home)
        try:
            return loadfunc(home=self.home, backend=self.backend)

        except s_exc.NoSuchFile:
            self.failed = True
            logger.debug('No default signing file at %s', path)
            self.outp.printf(f'ERROR: {optname} not specified and {path} does not exist')

        except (s_exc.BadFormat, s_exc.NotPrivateKey):
            self.failed = True
            logger.debug('Invalid default signing file at %s', path)
            self.outp.printf(f'ERROR: {optname} not specified and {path} is not valid')

        return None

    def _printWarnings(self):
        for warn in self.trustdir.popWarnings():
            self.outp.printf(f'WARNING: {warn.get("path")}: {warn.get("mesg")}')

    def _printErr(self, item, e):
        self.failed = True
        if isinstance(e, s_exc.SigErr):
            mesg = e.get('mesg')
        elif isinstance(e, OSError) and e.strerror:
            mesg = e.strerror
        else:
            mesg = str(e)
        self.outp.printf(f'ERROR: {item}: {mesg}')
