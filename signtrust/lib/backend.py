'''
The cryptographic capabilities used by signtrust.

Key generation, certificate encoding/decoding and certificate signing are all
delegated to the ``cryptography`` library.  Callers receive a Backend instance
so the filesystem and ordering logic can be exercised with a fake backend.
'''
import logging
import datetime

from typing import List, Tuple, Union

import cryptography.x509 as c_x509
import cryptography.exceptions as c_exc
import cryptography.hazmat.primitives.hashes as c_hashes
import cryptography.hazmat.primitives.asymmetric.ec as c_ec
import cryptography.hazmat.primitives.asymmetric.rsa as c_rsa
import cryptography.hazmat.primitives.asymmetric.types as c_types
import cryptography.hazmat.primitives.serialization as c_serialization

import signtrust.exc as s_exc
import signtrust.common as s_common
import signtrust.lib.const as s_const

logger = logging.getLogger(__name__)

Pkey = Union[c_rsa.RSAPrivateKey, c_ec.EllipticCurvePrivateKey]
SubjKey = List[Tuple[str, str]]

digests = {
    'sha256': c_hashes.SHA256,
    'sha384': c_hashes.SHA384,
    'sha512': c_hashes.SHA512,
}

def getSubjText(cert: c_x509.Certificate) -> str:
    '''
    Get the text of a certificate subject used for display and filtering.

    Notes:
        Attributes are rendered in certificate order as NAME=value without any
        escaping and joined with commas, e.g. CN=alice,DC=example,DC=com.
    '''
    return ','.join(f'{name}={valu}' for (name, valu) in getSubjKey(cert))

def getSubjKey(cert: c_x509.Certificate) -> SubjKey:
    '''
    Get the subject of a certificate as a sortable sequence of (name, value) pairs.
    '''
    return [(attr.rfc4514_attribute_name, str(attr.value)) for attr in cert.subject]

class Backend:
    '''
    Key generation, certificate codec and signing capabilities.

    Args:
        numbits (int): The RSA key size used by genPrivKey().
        days (int): The number of days built or signed certificates are valid for.
        digest (str): The name of the signature hash algorithm.

    Notes:
        * Private keys are written in PKCS#8 PEM form with no encryption.
        * Signed certificates are verified against the issuer certificate before
          they are returned, which catches an issuer key that does not belong to
          the issuer certificate.
    '''

    def __init__(self, numbits=s_const.KEY_BITS, days=s_const.CERT_DAYS, digest=s_const.DIGEST):

        ctor = digests.get(digest)
        if ctor is None:
            raise s_exc.BadArg(mesg=f'Unsupported digest: {digest}', digest=digest)

        self.crypto_numbits = numbits
        self.signing_digest = ctor
        self.validity = datetime.timedelta(days=days)

    # KeyGenerator
    def genPrivKey(self) -> c_rsa.RSAPrivateKey:
        return c_rsa.generate_private_key(s_const.KEY_EXPONENT, self.crypto_numbits)

    # CertificateCodec
    def loadCertByts(self, byts: bytes) -> c_x509.Certificate:
        '''
        Load a X509 certificate from its PEM encoded bytes.

        Raises:
            BadCertBytes: If the certificate bytes are invalid.
        '''
        try:
            return c_x509.load_pem_x509_certificate(byts)
        except Exception as e:
            raise s_exc.BadCertBytes(mesg=f'invalid X509 certificate: {e}') from None

    def loadKeyByts(self, byts: bytes) -> Pkey:
        '''
        Load a private key from its PEM encoded bytes.

        Raises:
            NotPrivateKey: If the bytes hold a public key.
            BadKeyBytes: If the bytes are not a supported private key.
        '''
        try:
            pkey = c_serialization.load_pem_private_key(byts, password=None)
        except TypeError as e:
            # encrypted keys are not supported
            raise s_exc.BadKeyBytes(mesg=f'invalid private key: {e}') from None
        except (ValueError, c_exc.UnsupportedAlgorithm) as e:
            if self._isPubKeyByts(byts):
                raise s_exc.NotPrivateKey(mesg='private key not found') from None
            raise s_exc.BadKeyBytes(mesg=f'invalid private key: {e}') from None

        if not isinstance(pkey, (c_rsa.RSAPrivateKey, c_ec.EllipticCurvePrivateKey)):
            raise s_exc.BadKeyBytes(mesg=f'Key is {pkey.__class__.__name__}, expected a RSA or EC key')

        return pkey

    def _isPubKeyByts(self, byts: bytes) -> bool:
        try:
            c_serialization.load_pem_public_key(byts)
        except (ValueError, c_exc.UnsupportedAlgorithm):
            return False
        return True

    def certToByts(self, cert: c_x509.Certificate) -> bytes:
        return cert.public_bytes(encoding=c_serialization.Encoding.PEM)

    def pkeyToByts(self, pkey: Pkey) -> bytes:
        return pkey.private_bytes(encoding=c_serialization.Encoding.PEM,
                                  format=c_serialization.PrivateFormat.PKCS8,
                                  encryption_algorithm=c_serialization.NoEncryption(),
                                  )

    def fingerprint(self, cert: c_x509.Certificate) -> str:
        '''
        Get the hex SHA256 fingerprint of the DER encoded certificate.
        '''
        return cert.fingerprint(c_hashes.SHA256()).hex()

    # Signer
    def selfSignCert(self, name: str, pkey: Pkey, email: bool = False) -> c_x509.Certificate:
        '''
        Create a self-signed certificate with the common name set to name.

        Args:
            name: The identity bound to the certificate.
            pkey: The private key which is bound to and signs the certificate.
            email: Add the name as a rfc822 subject and issuer alternative name.

        Returns:
            The signed certificate.
        '''
        subj = c_x509.Name([c_x509.NameAttribute(c_x509.NameOID.COMMON_NAME, name)])

        builder = self._genCertBuilder(subj, pkey.public_key())
        builder = builder.issuer_name(subj)

        if email:
            altnames = [c_x509.RFC822Name(name)]
            builder = builder.add_extension(c_x509.SubjectAlternativeName(altnames), critical=False)
            builder = builder.add_extension(c_x509.IssuerAlternativeName(altnames), critical=False)

        return builder.sign(private_key=pkey, algorithm=self.signing_digest())

    def signCertAs(self, cert: c_x509.Certificate, pkey: Pkey, issuer: c_x509.Certificate) -> c_x509.Certificate:
        '''
        Sign the subject and public key of a certificate with an issuer keypair.

        Args:
            cert: The certificate to sign.
            pkey: The private key of the issuer.
            issuer: The certificate of the issuer.

        Raises:
            CryptoMismatch: If pkey does not belong to the issuer certificate.

        Returns:
            A new certificate issued by the issuer.
        '''
        builder = self._genCertBuilder(cert.subject, cert.public_key())
        builder = builder.issuer_name(issuer.subject)

        sans = self._getExtValu(cert, c_x509.SubjectAlternativeName)
        if sans is not None:
            builder = builder.add_extension(c_x509.SubjectAlternativeName(list(sans)), critical=False)

        isans = self._getExtValu(issuer, c_x509.SubjectAlternativeName)
        if isans is not None:
            builder = builder.add_extension(c_x509.IssuerAlternativeName(list(isans)), critical=False)

        builder = builder.add_extension(
            c_x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer.public_key()),
            critical=False,
        )

        signed = builder.sign(private_key=pkey, algorithm=self.signing_digest())

        try:
            signed.verify_directly_issued_by(issuer)
        except (ValueError, TypeError, c_exc.InvalidSignature) as e:
            mesg = 'private key does not match the issuer certificate'
            raise s_exc.CryptoMismatch(mesg=mesg, issuer=getSubjText(issuer)) from e

        return signed

    def _getExtValu(self, cert: c_x509.Certificate, extcls):
        try:
            return cert.extensions.get_extension_for_class(extcls).value
        except c_x509.ExtensionNotFound:
            return None

    def _genCertBuilder(self, subj: c_x509.Name, pubkey: c_types.PublicKeyTypes) -> c_x509.CertificateBuilder:

        now = datetime.datetime.now(datetime.UTC)

        builder = c_x509.CertificateBuilder()
        builder = builder.subject_name(subj)
        builder = builder.not_valid_before(now)
        builder = builder.not_valid_after(now + self.validity)
        builder = builder.serial_number(int(s_common.guid(), 16))
        builder = builder.public_key(pubkey)

        builder = builder.add_extension(c_x509.BasicConstraints(ca=False, path_length=None), critical=True)
        builder = builder.add_extension(
            c_x509.KeyUsage(digital_signature=True, key_encipherment=True, data_encipherment=True,
                            key_agreement=False, key_cert_sign=False, crl_sign=False, encipher_only=False,
                            decipher_only=False, content_commitment=False),
            critical=False,
        )
        builder = builder.add_extension(c_x509.SubjectKeyIdentifier.from_public_key(pubkey), critical=False)
        return builder
