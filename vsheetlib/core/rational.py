#!/usr/bin/env python3

"""
Exact timestamp arithmetic with signed 32-bit components.

Stream time bases can carry very large denominators, so products are formed
exactly and reduced before the 32-bit range is checked. Callers that cannot
afford a failure use mul_or_approx(), which degrades to a floating point
approximation and reports the loss of precision.
"""

import functools
import math
from fractions import Fraction
from vsheetlib.core import utils
from vsheetlib.core.errors import RationalOverflowError

#============================================

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1
FALLBACK_DENOMINATOR = 1000000

#============================================

def _fits_int32(value: int) -> bool:
	return INT32_MIN <= value <= INT32_MAX

#============================================

@functools.total_ordering
class Rational():
	__slots__ = ('numerator', 'denominator')

	def __init__(self, numerator: int, denominator: int = 1):
		numerator = int(numerator)
		denominator = int(denominator)
		if denominator == 0:
			raise ZeroDivisionError("rational denominator must be non-zero")
		if denominator < 0:
			numerator = -numerator
			denominator = -denominator
		if not _fits_int32(numerator) or not _fits_int32(denominator):
			raise RationalOverflowError(
				f"{numerator}/{denominator} does not fit in 32-bit components")
		self.numerator = numerator
		self.denominator = denominator

	#============================
	@classmethod
	def from_fraction(cls, value) -> 'Rational':
		value = Fraction(value)
		return cls(value.numerator, value.denominator)

	#============================
	@classmethod
	def from_float(cls, value: float) -> 'Rational':
		"""
		Approximate a float as numerator/10^k, saturating at the 32-bit bounds.
		"""
		value = float(value)
		if not math.isfinite(value):
			raise ValueError(f"cannot convert {value} to a rational")
		denominator = FALLBACK_DENOMINATOR
		numerator = round(value * denominator)
		while not _fits_int32(numerator) and denominator > 1:
			denominator //= 10
			numerator = round(value * denominator)
		numerator = max(INT32_MIN, min(INT32_MAX, numerator))
		return cls(numerator, denominator).reduce()

	#============================
	def reduce(self) -> 'Rational':
		divisor = math.gcd(self.numerator, self.denominator)
		return Rational(self.numerator // divisor, self.denominator // divisor)

	#============================
	def to_fraction(self) -> Fraction:
		return Fraction(self.numerator, self.denominator)

	#============================
	def to_float(self) -> float:
		return self.numerator / self.denominator

	#============================
	def _coerce(self, other) -> Fraction:
		if isinstance(other, Rational):
			return other.to_fraction()
		if isinstance(other, int):
			return Fraction(other, 1)
		if isinstance(other, Fraction):
			return other
		return NotImplemented

	#============================
	def add(self, other) -> 'Rational':
		return Rational.from_fraction(self.to_fraction() + self._coerce(other))

	#============================
	def sub(self, other) -> 'Rational':
		return Rational.from_fraction(self.to_fraction() - self._coerce(other))

	#============================
	def mul(self, other) -> 'Rational':
		"""
		Exact product, raising RationalOverflowError if the reduced result
		does not fit. An int operand may be a 64-bit tick count.
		"""
		other_fraction = self._coerce(other)
		if other_fraction is NotImplemented:
			raise TypeError(f"cannot multiply Rational by {type(other).__name__}")
		numerator = self.numerator * other_fraction.numerator
		denominator = self.denominator * other_fraction.denominator
		divisor = math.gcd(numerator, denominator)
		return Rational(numerator // divisor, denominator // divisor)

	#============================
	def mul_or_approx(self, other) -> 'Rational':
		try:
			return self.mul(other)
		except RationalOverflowError as exc:
			approx = Rational.from_float(self.to_float() * float(self._coerce(other)))
			utils.warn(f"compute {self} * {other} failed: {exc}, fallback to {approx}")
			return approx

	#============================
	def compare(self, other) -> int:
		left = self.to_fraction()
		right = self._coerce(other)
		if left < right:
			return -1
		if left > right:
			return 1
		return 0

	#============================
	def __add__(self, other):
		if self._coerce(other) is NotImplemented:
			return NotImplemented
		return self.add(other)

	#============================
	def __sub__(self, other):
		if self._coerce(other) is NotImplemented:
			return NotImplemented
		return self.sub(other)

	#============================
	def __mul__(self, other):
		if self._coerce(other) is NotImplemented:
			return NotImplemented
		return self.mul(other)

	#============================
	def __neg__(self):
		if self.numerator == INT32_MIN:
			utils.warn(f"negate {self} does not fit, saturating")
			return Rational(INT32_MAX, self.denominator)
		return Rational(-self.numerator, self.denominator)

	#============================
	def __abs__(self):
		if self.numerator < 0:
			return -self
		return Rational(self.numerator, self.denominator)

	#============================
	def __eq__(self, other):
		right = self._coerce(other)
		if right is NotImplemented:
			return NotImplemented
		return self.to_fraction() == right

	#============================
	def __lt__(self, other):
		right = self._coerce(other)
		if right is NotImplemented:
			return NotImplemented
		return self.to_fraction() < right

	#============================
	def __hash__(self):
		return hash(self.to_fraction())

	#============================
	def __float__(self):
		return self.to_float()

	#============================
	def __repr__(self):
		return f"Rational({self.numerator}, {self.denominator})"

	#============================
	def __str__(self):
		return f"{self.numerator}/{self.denominator}"
