"""
Response families and link functions.

Each Link defines:
- g(μ) → η  (link)
- g⁻¹(η) → μ  (inverse link)
- g′(μ) and g″(μ)  (first and second derivative with respect to μ)
- the open interval on which μ is valid for the link

Each Family defines:
- A variance function V(μ) and its derivative V′(μ)
- A default link
- A deviance function for assessing model fit
- Validation of the response values against the family's support
- Starting values of μ for PIRLS

The catalog is closed: four families, three links, each a single
immutable instance held in a read-only registry built at import time.

References:
    McCullagh, P., & Nelder, J. A. (1989). Generalized Linear Models (2nd ed.)
    Wood, S. N. (2017). Generalized Additive Models (2nd ed.), Section 3.1
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Mapping

import numpy as np
from numpy.typing import NDArray
from scipy.special import expit, logit

from pyadditive.core.exceptions import FamilyMismatchError, UnknownFamilyOrLink


# =====================================================================
# Link functions
# =====================================================================

class Link(ABC):
    """Abstract link function g(μ) mapping mean to linear predictor."""

    #: Open interval (lower, upper) of valid μ values.
    domain: tuple[float, float] = (-np.inf, np.inf)

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def link(self, mu: NDArray) -> NDArray:
        """g(μ) → η."""
        ...

    @abstractmethod
    def linkinv(self, eta: NDArray) -> NDArray:
        """g⁻¹(η) → μ."""
        ...

    @abstractmethod
    def derivative(self, mu: NDArray) -> NDArray:
        """g′(μ) = dη/dμ."""
        ...

    @abstractmethod
    def second_derivative(self, mu: NDArray) -> NDArray:
        """g″(μ) = d²η/dμ²."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class IdentityLink(Link):
    """Identity link: g(μ) = μ. Default for the Normal family."""

    @property
    def name(self) -> str:
        return 'identity'

    def link(self, mu: NDArray) -> NDArray:
        return np.array(mu, dtype=np.float64)

    def linkinv(self, eta: NDArray) -> NDArray:
        return np.array(eta, dtype=np.float64)

    def derivative(self, mu: NDArray) -> NDArray:
        return np.ones_like(mu, dtype=np.float64)

    def second_derivative(self, mu: NDArray) -> NDArray:
        return np.zeros_like(mu, dtype=np.float64)


class LogLink(Link):
    """Log link: g(μ) = log(μ). Default for Poisson and Gamma."""

    domain = (0.0, np.inf)

    @property
    def name(self) -> str:
        return 'log'

    def link(self, mu: NDArray) -> NDArray:
        return np.log(mu)

    def linkinv(self, eta: NDArray) -> NDArray:
        # Clip to prevent overflow in exp
        return np.exp(np.clip(eta, -700.0, 700.0))

    def derivative(self, mu: NDArray) -> NDArray:
        return 1.0 / mu

    def second_derivative(self, mu: NDArray) -> NDArray:
        return -1.0 / mu ** 2


class LogitLink(Link):
    """Logit link: g(μ) = log(μ/(1-μ)). Default for Bernoulli."""

    domain = (0.0, 1.0)

    @property
    def name(self) -> str:
        return 'logit'

    def link(self, mu: NDArray) -> NDArray:
        return logit(mu)

    def linkinv(self, eta: NDArray) -> NDArray:
        return expit(eta)

    def derivative(self, mu: NDArray) -> NDArray:
        return 1.0 / (mu * (1.0 - mu))

    def second_derivative(self, mu: NDArray) -> NDArray:
        return (2.0 * mu - 1.0) / (mu ** 2 * (1.0 - mu) ** 2)


# =====================================================================
# Families
# =====================================================================

class Family(ABC):
    """
    Response distribution specification.

    Defines the relationship between the mean and variance of the
    response distribution and the deviance used to judge convergence
    and to score smoothing parameters.
    """

    #: Open interval (lower, upper) of valid μ values.
    domain: tuple[float, float] = (-np.inf, np.inf)

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def default_link(self) -> Link:
        ...

    @abstractmethod
    def variance(self, mu: NDArray) -> NDArray:
        """Variance function V(μ)."""
        ...

    @abstractmethod
    def variance_derivative(self, mu: NDArray) -> NDArray:
        """V′(μ)."""
        ...

    @abstractmethod
    def deviance(self, y: NDArray, mu: NDArray) -> float:
        """Total deviance: twice the saturated minus the model log-likelihood."""
        ...

    def initialize(self, y: NDArray) -> NDArray:
        """Starting μ for PIRLS. Callers clip the result into the valid interior."""
        return np.array(y, dtype=np.float64)

    def validate_response(self, y: NDArray) -> None:
        """Raise FamilyMismatchError if y lies outside the family's support."""
        return None

    @property
    def dispersion_is_fixed(self) -> bool:
        """Whether the scale parameter is known a priori (φ = 1)."""
        return False

    def clip(self, mu: NDArray, link: Link, eps: float) -> NDArray:
        """Clip μ into the interior of the family and link domains.

        The valid interval is the intersection of both domains, shrunk
        by `eps` at every finite endpoint.
        """
        lower = max(self.domain[0], link.domain[0])
        upper = min(self.domain[1], link.domain[1])
        lo = lower + eps if np.isfinite(lower) else None
        hi = upper - eps if np.isfinite(upper) else None
        if lo is None and hi is None:
            return mu
        return np.clip(mu, lo, hi)

    def _mismatch(self, y: NDArray, bad: NDArray, expected: str) -> FamilyMismatchError:
        examples = tuple(float(v) for v in np.unique(y[bad])[:5])
        n_bad = int(np.sum(bad))
        return FamilyMismatchError(
            f"{self.name} family requires {expected}; "
            f"{n_bad} of {len(y)} response values do not satisfy this "
            f"(e.g. {', '.join(f'{v:g}' for v in examples)})",
            family=self.name,
            n_invalid=n_bad,
            examples=examples,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class Normal(Family):
    """Normal (Gaussian) family. Default link: identity.

    V(μ) = 1
    Deviance = Σ (y_i - μ_i)²
    """

    @property
    def name(self) -> str:
        return 'normal'

    @property
    def default_link(self) -> Link:
        return IDENTITY

    def variance(self, mu: NDArray) -> NDArray:
        return np.ones_like(mu, dtype=np.float64)

    def variance_derivative(self, mu: NDArray) -> NDArray:
        return np.zeros_like(mu, dtype=np.float64)

    def deviance(self, y: NDArray, mu: NDArray) -> float:
        return float(np.sum((y - mu) ** 2))


class Gamma(Family):
    """Gamma family. Default link: log.

    V(μ) = μ²
    Deviance = 2 * Σ [-log(y_i/μ_i) + (y_i - μ_i)/μ_i]
    """

    domain = (0.0, np.inf)

    @property
    def name(self) -> str:
        return 'gamma'

    @property
    def default_link(self) -> Link:
        return LOG

    def variance(self, mu: NDArray) -> NDArray:
        return mu ** 2

    def variance_derivative(self, mu: NDArray) -> NDArray:
        return 2.0 * mu

    def deviance(self, y: NDArray, mu: NDArray) -> float:
        return 2.0 * float(np.sum(-np.log(y / mu) + (y - mu) / mu))

    def validate_response(self, y: NDArray) -> None:
        bad = ~(y > 0)
        if np.any(bad):
            raise self._mismatch(y, bad, "strictly positive responses")


class Poisson(Family):
    """Poisson family. Default link: log.

    V(μ) = μ
    Deviance = 2 * Σ [y_i log(y_i/μ_i) - (y_i - μ_i)]
    """

    domain = (0.0, np.inf)

    @property
    def name(self) -> str:
        return 'poisson'

    @property
    def default_link(self) -> Link:
        return LOG

    def variance(self, mu: NDArray) -> NDArray:
        return np.array(mu, dtype=np.float64)

    def variance_derivative(self, mu: NDArray) -> NDArray:
        return np.ones_like(mu, dtype=np.float64)

    def initialize(self, y: NDArray) -> NDArray:
        # R: y + 0.1 (to avoid log(0))
        return y + 0.1

    def deviance(self, y: NDArray, mu: NDArray) -> float:
        # 0*log(0) = 0. np.where evaluates both branches, so suppress
        # harmless warnings from the unused branch.
        with np.errstate(divide='ignore', invalid='ignore'):
            term = np.where(y > 0, y * np.log(y / mu), 0.0)
        return 2.0 * float(np.sum(term - (y - mu)))

    def validate_response(self, y: NDArray) -> None:
        bad = y < 0
        if np.any(bad):
            raise self._mismatch(y, bad, "non-negative responses")

    @property
    def dispersion_is_fixed(self) -> bool:
        return True


class Bernoulli(Family):
    """Bernoulli family for binary responses. Default link: logit.

    V(μ) = μ(1-μ)
    Deviance = 2 * Σ [y_i log(y_i/μ_i) + (1-y_i) log((1-y_i)/(1-μ_i))]
    """

    domain = (0.0, 1.0)

    @property
    def name(self) -> str:
        return 'bernoulli'

    @property
    def default_link(self) -> Link:
        return LOGIT

    def variance(self, mu: NDArray) -> NDArray:
        return mu * (1.0 - mu)

    def variance_derivative(self, mu: NDArray) -> NDArray:
        return 1.0 - 2.0 * mu

    def initialize(self, y: NDArray) -> NDArray:
        # R's default: (y + 0.5) / 2 for binary data
        return (y + 0.5) / 2.0

    def deviance(self, y: NDArray, mu: NDArray) -> float:
        with np.errstate(divide='ignore', invalid='ignore'):
            term1 = np.where(y > 0, y * np.log(y / mu), 0.0)
            term2 = np.where(y < 1, (1 - y) * np.log((1 - y) / (1 - mu)), 0.0)
        return 2.0 * float(np.sum(term1 + term2))

    def validate_response(self, y: NDArray) -> None:
        bad = ~((y == 0) | (y == 1))
        if np.any(bad):
            raise self._mismatch(y, bad, "binary (0 or 1) responses")

    @property
    def dispersion_is_fixed(self) -> bool:
        return True


# =====================================================================
# Registries
# =====================================================================

IDENTITY = IdentityLink()
LOG = LogLink()
LOGIT = LogitLink()

NORMAL = Normal()
GAMMA = Gamma()
POISSON = Poisson()
BERNOULLI = Bernoulli()

LINKS: Mapping[str, Link] = MappingProxyType({
    'identity': IDENTITY,
    'log': LOG,
    'logit': LOGIT,
})

FAMILIES: Mapping[str, Family] = MappingProxyType({
    'normal': NORMAL,
    'gaussian': NORMAL,
    'gamma': GAMMA,
    'poisson': POISSON,
    'bernoulli': BERNOULLI,
})


def resolve_link(link: str | Link | None, family: Family) -> Link:
    """Resolve a link argument to a registry Link.

    Args:
        link: A link name ('identity', 'log', 'logit'; case-insensitive),
              a Link instance (passed through), or None for the family's
              default link.
        family: Family whose default link is used when `link` is None.

    Raises:
        UnknownFamilyOrLink: If the name is not recognized.
    """
    if link is None:
        return family.default_link
    if isinstance(link, Link):
        return link
    if isinstance(link, str):
        found = LINKS.get(link.lower())
        if found is None:
            valid = tuple(sorted(LINKS.keys()))
            raise UnknownFamilyOrLink(
                f"Unknown link: {link!r}. Valid links: {', '.join(valid)}",
                name=link,
                kind='link',
                valid=valid,
            )
        return found
    raise TypeError(f"link must be str or Link, got {type(link).__name__}")


def resolve_family(family: str | Family) -> Family:
    """Resolve a family argument to a registry Family.

    Args:
        family: A family name ('normal', 'gamma', 'poisson', 'bernoulli';
                case-insensitive, 'gaussian' accepted for 'normal') or a
                Family instance (passed through).

    Raises:
        UnknownFamilyOrLink: If the name is not recognized.
    """
    if isinstance(family, Family):
        return family
    if isinstance(family, str):
        found = FAMILIES.get(family.lower())
        if found is None:
            valid = tuple(sorted(k for k in FAMILIES.keys() if k != 'gaussian'))
            raise UnknownFamilyOrLink(
                f"Unknown family: {family!r}. Valid families: {', '.join(valid)}",
                name=family,
                kind='family',
                valid=valid,
            )
        return found
    raise TypeError(f"family must be str or Family, got {type(family).__name__}")
