import os
import logging
import collections

from typing import Iterator, List, Union

import cryptography.x509 as c_x509

import signtrust.exc as s_exc
import signtrust.common as s_common
import signtrust.lib.const as s_const
import signtrust.lib.backend as s_backend

logger = logging.getLogger(__name__)

defdir_default = os.path.join(s_common.gemhome_default, s_const.TRUST_DIR_NAME)
defdir = os.getenv('SIGTRUST_TRUST_DIR')
if defdir is None:
    defdir = defdir_default

TrustEntry = collections.namedtuple('TrustEntry', ('cert', 'path'))

StrOrNone = Union[str, None]

def matches(cert: c_x509.Certificate, filt: str) -> bool:
    '''
    Check if a certificate subject contains a filter string.

    Args:
        cert: The certificate to check.
        filt: The filter string. The empty string matches every certificate.

    Notes:
        This is a case-insensitive substring test against the rendered subject,
        not a match on individual subject attributes.

    Returns:
        True if the filter is present in the subject.
    '''
    subj = s_backend.getSubjText(cert).lower()
    return filt.lower() in subj

class TrustDir:
    '''
    A directory of trusted certificates.

    Args:
        path (str): Optional path which can override the default trust directory.
        backend (signtrust.lib.backend.Backend): The crypto backend used to encode and decode certificates.

    Notes:
        * Each certificate is stored as ``cert-<sha256 fingerprint>.pem``. Adding the
          same certificate twice overwrites the same file.
        * Files which fail to load while enumerating are recorded in ``warnings`` as
          StoreCorruption errors. Enumeration continues past them.
        * There is no locking. Running multiple processes against the same trust
          directory at once is not supported.
    '''

    def __init__(self, path: StrOrNone = None, backend=None):

        if path is None:
            path = defdir

        if backend is None:
            backend = s_backend.Backend()

        self.path = s_common.genpath(path)
        self.backend = backend
        self.warnings = []

    def getCertPath(self, cert: c_x509.Certificate) -> str:
        '''
        Get the path a certificate is stored at in the trust directory.
        '''
        return os.path.join(self.path, 'cert-%s.pem' % (self.backend.fingerprint(cert),))

    def addCert(self, cert: c_x509.Certificate) -> TrustEntry:
        '''
        Add a trusted certificate.

        Args:
            cert: The certificate to trust.

        Returns:
            The TrustEntry for the stored certificate.
        '''
        path = self.getCertPath(cert)
        s_common.gendir(self.path)
        s_common.putbytes(path, self.backend.certToByts(cert), mode=s_const.CERT_FILE_MODE)

        logger.info('Trusted certificate %s at %s', s_backend.getSubjText(cert), path)
        return TrustEntry(cert, path)

    def iterTrustEntries(self) -> Iterator[TrustEntry]:
        '''
        Yield the TrustEntry for each certificate in the trust directory.

        Notes:
            Unreadable entries are appended to ``self.warnings`` and skipped.
        '''
        if not os.path.isdir(self.path):
            return

        for path in sorted(s_common.listdir(self.path, glob='*.pem')):

            try:
                byts = s_common.reqbytes(path)
                cert = self.backend.loadCertByts(byts)

            except (OSError, s_exc.SigErr) as e:
                mesg = e.get('mesg') if isinstance(e, s_exc.SigErr) else str(e)
                logger.debug('Skipping unreadable trust entry %s: %s', path, mesg)
                self.warnings.append(s_exc.StoreCorruption(mesg=mesg, path=path))
                continue

            yield TrustEntry(cert, path)

    def getCertEntries(self, filt: str = '') -> List[TrustEntry]:
        '''
        Get the trust entries whose certificate subject contains filt.

        Args:
            filt: The subject filter. The empty string returns every entry.

        Returns:
            The matching entries sorted by subject.
        '''
        ents = [ent for ent in self.iterTrustEntries() if matches(ent.cert, filt)]
        return sorted(ents, key=lambda ent: s_backend.getSubjKey(ent.cert))

    def getCerts(self, filt: str = '') -> List[c_x509.Certificate]:
        '''
        Get the trusted certificates whose subject contains filt, sorted by subject.
        '''
        return [ent.cert for ent in self.getCertEntries(filt)]

    def delCerts(self, filt: str) -> List[TrustEntry]:
        '''
        Remove the trusted certificates whose subject contains filt.

        Args:
            filt: The subject filter.

        Notes:
            An entry which is already gone when it is about to be removed is skipped.

        Returns:
            The removed entries. This is empty if nothing matched.
        '''
        retn = []
        for ent in self.getCertEntries(filt):

            try:
                os.unlink(ent.path)
            except FileNotFoundError:
                continue

            logger.info('Removed trusted certificate %s at %s', s_backend.getSubjText(ent.cert), ent.path)
            retn.append(ent)

        return retn

    def popWarnings(self) -> List[s_exc.StoreCorruption]:
        '''
        Get and clear the StoreCorruption errors collected while enumerating.
        '''
        retn = self.warnings
        self.warnings = []
        return retn
