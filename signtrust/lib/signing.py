import logging

import cryptography.x509 as c_x509

import signtrust.common as s_common
import signtrust.lib.backend as s_backend
import signtrust.lib.identity as s_identity

logger = logging.getLogger(__name__)

def signCertFile(path: str, issuer_cert: c_x509.Certificate, issuer_key: s_backend.Pkey,
                 backend=None) -> c_x509.Certificate:
    '''
    Sign the certificate stored at path with an issuer keypair, replacing the file contents.

    Args:
        path: The path of the certificate to sign.
        issuer_cert: The certificate of the issuer.
        issuer_key: The private key of the issuer.
        backend: The crypto backend.

    Notes:
        The file is rewritten in place with the permission bits it had before
        signing, regardless of the process umask.  Nothing is written if signing fails.

    Raises:
        NoSuchFile: If there is no file at path.
        BadCertBytes: If the file is not a certificate.
        CryptoMismatch: If issuer_key does not belong to issuer_cert.

    Returns:
        The newly signed certificate.
    '''
    if backend is None:
        backend = s_backend.Backend()

    path = s_common.reqpath(path)

    cert = s_identity.loadCertPath(path, backend=backend)
    mode = s_common.getmode(path)

    signed = backend.signCertAs(cert, issuer_key, issuer_cert)

    s_common.putbytes(path, backend.certToByts(signed), mode=mode)

    logger.info('Signed %s as %s (mode %s)', path, s_backend.getSubjText(issuer_cert), oct(mode))
    return signed
