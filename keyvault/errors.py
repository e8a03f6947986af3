class KeyVaultError(Exception):
    """Base exception for key vault errors"""
    pass


class KeyVaultInputError(KeyVaultError, ValueError):
    """Raised for malformed keys, addresses, mnemonics, passwords or transactions"""
    pass


class KeyVaultNotFoundError(KeyVaultError):
    """Raised when no record exists for the requested address"""
    pass


class KeyVaultAuthorizationError(KeyVaultError):
    """Raised when the user declines an operation or fails to authorize it"""
    pass


class KeyVaultIntegrityError(KeyVaultError):
    """Raised when stored data is corrupted or uses an unsupported format"""
    pass


class VaultConfigurationError(KeyVaultError):
    """Raised when required vault configuration is missing or invalid."""
    pass


class RandomSourceError(KeyVaultError):
    """Raised by the system random source when the OS cannot supply bytes"""
    pass


# Input validation

class InvalidPrivateKeyError(KeyVaultInputError):
    def __init__(self, message: str = "Invalid private key"):
        super().__init__(message)


class InvalidChecksumAddress(KeyVaultInputError):
    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Address: {address} is invalid")


class InvalidMnemonicError(KeyVaultInputError):
    def __init__(self, message: str = "Invalid mnemonic"):
        super().__init__(message)


class PasswordMismatch(KeyVaultInputError):
    def __init__(self, message: str = "Password and password confirmation do not match"):
        super().__init__(message)


class PasswordContainsSpecialChars(KeyVaultInputError):
    def __init__(self, message: str = "Password contains characters that are not allowed"):
        super().__init__(message)


class InvalidTransaction(KeyVaultInputError):
    pass


# Not found

class NoEquivalentPrivateKey(KeyVaultNotFoundError):
    def __init__(self, address: str = ""):
        self.address = address
        message = f"No private key stored for {address}" if address else "No private key stored for this address"
        super().__init__(message)


# Authorization outcomes

class AbortedSigningOfTx(KeyVaultAuthorizationError):
    def __init__(self, message: str = "Signing of transaction was aborted"):
        super().__init__(message)


class AbortedDecryption(KeyVaultAuthorizationError):
    def __init__(self, message: str = "Decryption of private key was aborted"):
        super().__init__(message)


class FailedToDecryptPrivateKeyPasswordInvalid(KeyVaultAuthorizationError):
    def __init__(self, message: str = "Failed to decrypt private key; the password is invalid"):
        super().__init__(message)


# Integrity

class DecryptedValueIsNotAPrivateKey(KeyVaultIntegrityError):
    def __init__(self, message: str = "Decrypted value is not a private key"):
        super().__init__(message)


class InvalidEncryptionAlgorithm(KeyVaultIntegrityError):
    def __init__(self, algorithm: object = None):
        self.algorithm = algorithm
        super().__init__(f"Invalid encryption algorithm: {algorithm!r}")


class CorruptedKeyRecord(KeyVaultIntegrityError):
    def __init__(self, storage_key: str, reason: str = ""):
        self.storage_key = storage_key
        detail = f": {reason}" if reason else ""
        super().__init__(f"Stored record {storage_key} is corrupted{detail}")
