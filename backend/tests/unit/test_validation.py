"""
Unit tests for validate() and check_ssl_conf().
"""
from unittest.mock import patch

from tests.conftest import BAD_CERT, BAD_KEY, SALT_NEW, SALT_OLD, configure_ssl
from tls_identity.codec import aes_encrypt_pkey
from tls_identity.errors import ErrorKind
from tls_identity.schema import SSLConfig
from tls_identity.validation import check_ssl_conf, support_client_verification, validate


class TestValidate:
    """Tests for validate()."""

    def test_valid_pair(self, pem_pair):
        cert, key = pem_pair
        assert validate(cert, key).ok

    def test_cert_only(self, pem_pair):
        """Without a key only the certificate is parsed."""
        cert, _ = pem_pair
        result = validate(cert)
        assert result.ok
        assert result.value is True

    def test_bad_cert(self, pem_pair):
        _, key = pem_pair
        result = validate(BAD_CERT, key)
        assert not result.ok
        assert result.error.startswith("failed to parse cert: ")

    def test_bad_key(self, pem_pair):
        cert, _ = pem_pair
        result = validate(cert, BAD_KEY)
        assert not result.ok
        assert result.error.startswith("failed to parse key: ")

    def test_encrypted_key(self, pem_pair):
        configure_ssl(key_encrypt_salt=SALT_OLD)
        cert, key = pem_pair
        assert validate(cert, aes_encrypt_pkey(key)).ok

    def test_undecryptable_key(self, pem_pair):
        cert, key = pem_pair
        configure_ssl(key_encrypt_salt=SALT_OLD)
        stored = aes_encrypt_pkey(key)
        configure_ssl(key_encrypt_salt=SALT_NEW)

        result = validate(cert, stored)

        assert result.error == "failed to decrypt previous encrypted key"

    def test_non_string_key(self, pem_pair):
        cert, _ = pem_pair
        result = validate(cert, 12345)
        assert not result.ok
        assert result.error.startswith("failed to parse key: ")

    def test_mismatched_pair_is_accepted(self, pem_pair, other_pem_pair):
        """Cert/key correspondence is not checked."""
        cert, _ = pem_pair
        _, other_key = other_pem_pair
        assert validate(cert, other_key).ok


class TestCheckSSLConf:
    """Tests for check_ssl_conf()."""

    def test_valid_server_conf(self, server_conf):
        result = check_ssl_conf(False, server_conf)
        assert result.ok

    def test_accepts_model(self, server_conf):
        assert check_ssl_conf(False, SSLConfig(**server_conf)).ok

    def test_schema_failure(self, server_conf):
        """Schema errors are configuration errors."""
        del server_conf["snis"]
        result = check_ssl_conf(False, server_conf)

        assert not result.ok
        assert result.kind == ErrorKind.CONFIGURATION
        assert result.error.startswith("invalid configuration: ")

    def test_dynamic_path_skips_schema(self, server_conf):
        """Configs already checked upstream are not checked again."""
        del server_conf["snis"]
        assert check_ssl_conf(True, server_conf).ok

    def test_bad_primary_pair(self, server_conf):
        server_conf["cert"] = BAD_CERT
        result = check_ssl_conf(False, server_conf)
        assert result.error.startswith("failed to parse cert: ")

    def test_mismatched_number_of_certs_and_keys(self, server_conf, pem_pair, other_pem_pair):
        cert, key = pem_pair
        other_cert, _ = other_pem_pair
        server_conf["certs"] = [cert, other_cert]
        server_conf["keys"] = [key]

        result = check_ssl_conf(False, server_conf)

        assert not result.ok
        assert result.error == "mismatched number of certs and keys"

    def test_missing_keys_counts_as_zero(self, server_conf, pem_pair):
        cert, _ = pem_pair
        server_conf["certs"] = [cert]
        assert check_ssl_conf(False, server_conf).error == "mismatched number of certs and keys"

    def test_failing_pair_is_named_by_index(self, server_conf, pem_pair, other_pem_pair):
        """The first failing extra pair is reported with its position, counted from 1."""
        cert, key = pem_pair
        other_cert, other_key = other_pem_pair
        server_conf["certs"] = [cert, other_cert, BAD_CERT]
        server_conf["keys"] = [key, other_key, key]

        result = check_ssl_conf(False, server_conf)

        assert not result.ok
        assert result.error.startswith("failed to handle cert-key pair[3]: failed to parse cert: ")

    def test_failing_first_extra_pair_is_pair_one(self, server_conf, pem_pair):
        _, key = pem_pair
        server_conf["certs"] = [BAD_CERT]
        server_conf["keys"] = [key]

        result = check_ssl_conf(False, server_conf)

        assert result.error.startswith("failed to handle cert-key pair[1]: failed to parse cert: ")

    def test_non_string_key_in_dynamic_path(self, server_conf):
        """Content the schema would reject is still reported, not raised."""
        server_conf["key"] = 12345

        result = check_ssl_conf(True, server_conf)

        assert not result.ok
        assert result.kind == ErrorKind.CONTENT
        assert result.error.startswith("failed to parse key: ")

    def test_extra_pairs_with_encrypted_keys(self, server_conf, pem_pair, other_pem_pair):
        configure_ssl(key_encrypt_salt=SALT_OLD)
        other_cert, other_key = other_pem_pair
        server_conf["key"] = aes_encrypt_pkey(server_conf["key"])
        server_conf["certs"] = [other_cert]
        server_conf["keys"] = [aes_encrypt_pkey(other_key)]

        assert check_ssl_conf(False, server_conf).ok

    def test_client_type_stops_after_primary(self, pem_pair, other_pem_pair):
        """Client objects skip the extra pair and CA checks."""
        cert, key = pem_pair
        other_cert, _ = other_pem_pair
        conf = {"type": "client", "cert": cert, "key": key, "certs": [other_cert, other_cert], "keys": [key]}

        assert check_ssl_conf(False, conf).ok

    def test_client_ca(self, server_conf, other_pem_pair):
        ca, _ = other_pem_pair
        server_conf["client"] = {"ca": ca, "depth": 2}
        assert check_ssl_conf(False, server_conf).ok

    def test_invalid_client_ca(self, server_conf):
        server_conf["client"] = {"ca": BAD_CERT}
        result = check_ssl_conf(False, server_conf)
        assert result.error.startswith("failed to validate client_cert: failed to parse cert: ")

    def test_client_ca_without_verification_support(self, server_conf, other_pem_pair):
        """Missing TLS library support is a capability error, whatever the CA."""
        ca, _ = other_pem_pair
        for client_ca in (ca, BAD_CERT):
            server_conf["client"] = {"ca": client_ca}
            with patch("tls_identity.validation.support_client_verification", return_value=False):
                result = check_ssl_conf(False, server_conf)

            assert not result.ok
            assert result.kind == ErrorKind.CAPABILITY
            assert result.error == "client tls verify unsupported"


class TestSupportClientVerification:
    def test_supported_by_ssl_module(self):
        assert support_client_verification() is True
