"""
Identity Provider Client
AWS Cognito adapter for the admin and general user pools
"""

import asyncio
import base64
import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from marketplace.config import IdentityPool, PoolConfig, Settings
from marketplace.models.user import UserType

logger = logging.getLogger(__name__)


class ProviderErrorCode(str, Enum):
    IDENTITY_ALREADY_EXISTS = "identity_already_exists"
    INVALID_CREDENTIAL_FORMAT = "invalid_credential_format"
    INVALID_ATTRIBUTE = "invalid_attribute"
    CODE_MISMATCH = "code_mismatch"
    CODE_EXPIRED = "code_expired"
    IDENTITY_NOT_FOUND = "identity_not_found"
    INCORRECT_CREDENTIALS = "incorrect_credentials"
    NOT_CONFIRMED = "not_confirmed"
    INVALID_TOKEN = "invalid_token"
    CHALLENGE_EXPIRED = "challenge_expired"
    INCORRECT_ANSWER = "incorrect_answer"
    UPSTREAM_FAILURE = "upstream_failure"


COGNITO_ERROR_CODES: Dict[str, ProviderErrorCode] = {
    "UsernameExistsException": ProviderErrorCode.IDENTITY_ALREADY_EXISTS,
    "AliasExistsException": ProviderErrorCode.IDENTITY_ALREADY_EXISTS,
    "InvalidPasswordException": ProviderErrorCode.INVALID_CREDENTIAL_FORMAT,
    "InvalidParameterException": ProviderErrorCode.INVALID_ATTRIBUTE,
    "CodeMismatchException": ProviderErrorCode.CODE_MISMATCH,
    "ExpiredCodeException": ProviderErrorCode.CODE_EXPIRED,
    "UserNotFoundException": ProviderErrorCode.IDENTITY_NOT_FOUND,
    "NotAuthorizedException": ProviderErrorCode.INCORRECT_CREDENTIALS,
    "UserNotConfirmedException": ProviderErrorCode.NOT_CONFIRMED,
}


class IdentityProviderError(Exception):
    """Provider failure translated to a provider-neutral code"""

    def __init__(self, code: ProviderErrorCode, message: str, provider_code: Optional[str] = None):
        self.code = code
        self.message = message
        self.provider_code = provider_code
        super().__init__(message)


@dataclass
class RegistrationResult:
    subject_id: str
    user_confirmed: bool = False
    code_delivery: Optional[Dict[str, Any]] = None


@dataclass
class ChallengeSession:
    session: str
    challenge_name: str


@dataclass
class TokenSet:
    access_token: str
    id_token: str
    refresh_token: Optional[str] = None


@dataclass
class IdentityRecord:
    username: str
    subject_id: Optional[str]
    attributes: Dict[str, str] = field(default_factory=dict)


def pool_for_user_type(user_type: UserType) -> IdentityPool:
    """Admins authenticate against the admin pool, everyone else the general pool"""
    return IdentityPool.ADMIN if user_type == UserType.ADMIN else IdentityPool.GENERAL


def compute_secret_hash(username: str, client_id: str, client_secret: str) -> str:
    """Base64 HMAC-SHA256 of username + client id, keyed with the client secret"""
    digest = hmac.new(
        client_secret.encode('utf-8'),
        (username + client_id).encode('utf-8'),
        hashlib.sha256
    ).digest()
    return base64.b64encode(digest).decode('utf-8')


def _attributes_to_dict(attributes: List[Dict[str, str]]) -> Dict[str, str]:
    return {attr['Name']: attr['Value'] for attr in attributes or []}


class CognitoIdentityProvider:
    """
    Cognito user pool client

    boto3 is synchronous, so every call runs in a worker thread. Calls are
    remote and independently committed; nothing here can be rolled back.
    """

    def __init__(self, settings: Settings, client=None):
        self.pools: Dict[IdentityPool, PoolConfig] = settings.identity_pools()
        self.client = client or boto3.client(
            'cognito-idp',
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
        )

    def pool_config(self, pool: IdentityPool) -> PoolConfig:
        return self.pools[pool]

    def generate_secret_hash(self, username: str, pool: IdentityPool) -> str:
        config = self.pools[pool]
        return compute_secret_hash(username, config.client_id, config.client_secret)

    async def _call(
        self,
        operation: str,
        overrides: Optional[Dict[str, ProviderErrorCode]] = None,
        **params
    ) -> Dict[str, Any]:
        """Run a boto3 operation in a thread and translate its failures"""
        method = getattr(self.client, operation)
        try:
            return await asyncio.to_thread(method, **params)
        except ClientError as e:
            error = e.response.get('Error', {})
            provider_code = error.get('Code', 'Unknown')
            message = error.get('Message') or str(e)
            mapping = {**COGNITO_ERROR_CODES, **(overrides or {})}
            code = mapping.get(provider_code, ProviderErrorCode.UPSTREAM_FAILURE)
            logger.warning(f"Cognito {operation} failed: {provider_code} ({code.value})")
            raise IdentityProviderError(code, message, provider_code) from e
        except BotoCoreError as e:
            logger.error(f"Cognito {operation} could not be reached: {e}")
            raise IdentityProviderError(ProviderErrorCode.UPSTREAM_FAILURE, str(e)) from e

    async def register(
        self,
        pool: IdentityPool,
        username: str,
        password: str,
        attributes: Dict[str, str]
    ) -> RegistrationResult:
        """
        Create an unconfirmed identity

        Args:
            pool: Target user pool
            username: Identity username (the user's email)
            password: Password satisfying the pool policy
            attributes: Cognito attribute name to value

        Returns:
            RegistrationResult: Subject id and code delivery metadata
        """
        config = self.pools[pool]
        response = await self._call(
            'sign_up',
            ClientId=config.client_id,
            SecretHash=self.generate_secret_hash(username, pool),
            Username=username,
            Password=password,
            UserAttributes=[{'Name': name, 'Value': value} for name, value in attributes.items()],
        )
        logger.info(f"Registered identity {response['UserSub']} in {pool.value} pool")
        return RegistrationResult(
            subject_id=response['UserSub'],
            user_confirmed=response.get('UserConfirmed', False),
            code_delivery=response.get('CodeDeliveryDetails'),
        )

    async def admin_confirm(self, pool: IdentityPool, username: str) -> None:
        await self._call(
            'admin_confirm_sign_up',
            UserPoolId=self.pools[pool].pool_id,
            Username=username,
        )

    async def mark_attribute_verified(self, pool: IdentityPool, username: str, attribute: str) -> None:
        """Set email_verified or phone_number_verified to true"""
        await self._call(
            'admin_update_user_attributes',
            UserPoolId=self.pools[pool].pool_id,
            Username=username,
            UserAttributes=[{'Name': attribute, 'Value': 'true'}],
        )

    async def confirm_registration(self, pool: IdentityPool, username: str, code: str) -> None:
        config = self.pools[pool]
        await self._call(
            'confirm_sign_up',
            ClientId=config.client_id,
            SecretHash=self.generate_secret_hash(username, pool),
            Username=username,
            ConfirmationCode=code,
        )

    async def resend_code(self, pool: IdentityPool, username: str) -> Optional[Dict[str, Any]]:
        config = self.pools[pool]
        response = await self._call(
            'resend_confirmation_code',
            ClientId=config.client_id,
            SecretHash=self.generate_secret_hash(username, pool),
            Username=username,
        )
        return response.get('CodeDeliveryDetails')

    async def admin_resend(self, pool: IdentityPool, username: str, delivery_medium: str = "SMS") -> None:
        """
        Redeliver the invitation code through the given medium

        Uses AdminCreateUser with MessageAction=RESEND, which re-sends for an
        existing identity instead of creating a new one.
        """
        await self._call(
            'admin_create_user',
            UserPoolId=self.pools[pool].pool_id,
            Username=username,
            MessageAction='RESEND',
            DesiredDeliveryMediums=[delivery_medium],
        )

    async def initiate_custom_auth(self, pool: IdentityPool, username: str) -> ChallengeSession:
        config = self.pools[pool]
        response = await self._call(
            'initiate_auth',
            AuthFlow='CUSTOM_AUTH',
            ClientId=config.client_id,
            AuthParameters={
                'USERNAME': username,
                'SECRET_HASH': self.generate_secret_hash(username, pool),
            },
        )
        return ChallengeSession(
            session=response.get('Session'),
            challenge_name=response.get('ChallengeName'),
        )

    async def respond_to_challenge(
        self,
        pool: IdentityPool,
        username: str,
        session: str,
        answer: str
    ) -> TokenSet:
        """
        Answer a CUSTOM_CHALLENGE with the delivered code

        Raises:
            IdentityProviderError: INCORRECT_ANSWER when no tokens are issued,
                CHALLENGE_EXPIRED when the session is no longer valid
        """
        config = self.pools[pool]
        try:
            response = await self._call(
                'respond_to_auth_challenge',
                overrides={'CodeMismatchException': ProviderErrorCode.INCORRECT_ANSWER},
                ClientId=config.client_id,
                ChallengeName='CUSTOM_CHALLENGE',
                Session=session,
                ChallengeResponses={
                    'USERNAME': username,
                    'ANSWER': answer,
                    'SECRET_HASH': self.generate_secret_hash(username, pool),
                },
            )
        except IdentityProviderError as e:
            if e.provider_code == 'NotAuthorizedException':
                code = (
                    ProviderErrorCode.CHALLENGE_EXPIRED
                    if 'session' in e.message.lower()
                    else ProviderErrorCode.INCORRECT_ANSWER
                )
                raise IdentityProviderError(code, e.message, e.provider_code) from e
            raise

        result = response.get('AuthenticationResult')
        if not result:
            # Cognito re-issues the challenge on a wrong answer
            raise IdentityProviderError(
                ProviderErrorCode.INCORRECT_ANSWER,
                "Invalid verification code",
            )
        return TokenSet(
            access_token=result['AccessToken'],
            id_token=result['IdToken'],
            refresh_token=result.get('RefreshToken'),
        )

    async def password_auth(self, pool: IdentityPool, username: str, password: str) -> TokenSet:
        config = self.pools[pool]
        response = await self._call(
            'initiate_auth',
            AuthFlow='USER_PASSWORD_AUTH',
            ClientId=config.client_id,
            AuthParameters={
                'USERNAME': username,
                'PASSWORD': password,
                'SECRET_HASH': self.generate_secret_hash(username, pool),
            },
        )
        result = response.get('AuthenticationResult')
        if not result:
            challenge = response.get('ChallengeName', 'unknown')
            raise IdentityProviderError(
                ProviderErrorCode.UPSTREAM_FAILURE,
                f"Additional authentication challenge required: {challenge}",
            )
        return TokenSet(
            access_token=result['AccessToken'],
            id_token=result['IdToken'],
            refresh_token=result.get('RefreshToken'),
        )

    async def get_user_by_token(self, access_token: str) -> IdentityRecord:
        response = await self._call(
            'get_user',
            overrides={
                'NotAuthorizedException': ProviderErrorCode.INVALID_TOKEN,
                'UserNotFoundException': ProviderErrorCode.INVALID_TOKEN,
            },
            AccessToken=access_token,
        )
        attributes = _attributes_to_dict(response.get('UserAttributes', []))
        return IdentityRecord(
            username=response['Username'],
            subject_id=attributes.get('sub'),
            attributes=attributes,
        )

    async def find_by_phone(self, pool: IdentityPool, phone: str) -> Optional[str]:
        """
        Resolve a phone number to the identity's username (its email)

        Cognito has no phone index, so this is a filtered ListUsers scan and
        costs O(pool size) on the provider side. Large pools need a local
        phone to user mapping instead. Returns None when nothing matches or
        when the phone is shared by more than one identity.
        """
        escaped = phone.replace('\\', '\\\\').replace('"', '\\"')
        response = await self._call(
            'list_users',
            UserPoolId=self.pools[pool].pool_id,
            Filter=f'phone_number = "{escaped}"',
            Limit=2,
        )
        users = response.get('Users', [])
        if not users:
            return None
        if len(users) > 1:
            logger.warning(f"Phone lookup matched {len(users)} identities in {pool.value} pool")
            return None

        attributes = _attributes_to_dict(users[0].get('Attributes', []))
        return attributes.get('email') or users[0].get('Username')

    async def get_user_attributes(self, pool: IdentityPool, username: str) -> IdentityRecord:
        response = await self._call(
            'admin_get_user',
            UserPoolId=self.pools[pool].pool_id,
            Username=username,
        )
        attributes = _attributes_to_dict(response.get('UserAttributes', []))
        return IdentityRecord(
            username=response['Username'],
            subject_id=attributes.get('sub'),
            attributes=attributes,
        )
