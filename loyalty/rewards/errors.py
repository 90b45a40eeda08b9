class LoyaltyError(Exception):
    pass


class LoyaltyValidationError(LoyaltyError):
    pass


class LoyaltyNotFoundError(LoyaltyError):
    pass


class RewardNotAvailableError(LoyaltyError):
    pass


class RewardAlreadyRedeemedError(LoyaltyError):
    pass


class RedemptionCapExceededError(LoyaltyError):
    def __init__(self, *, redeemed_in_window: int, requested: int, cap: int) -> None:
        self.redeemed_in_window = redeemed_in_window
        self.requested = requested
        self.cap = cap
        super().__init__(
            f"redemption cap {cap} exceeded: {redeemed_in_window} already used, {requested} requested"
        )

    @property
    def remaining(self) -> int:
        return max(0, self.cap - self.redeemed_in_window)


class InsufficientBalanceError(LoyaltyError):
    def __init__(self, *, available: int, requested: int) -> None:
        self.available = available
        self.requested = requested
        super().__init__(f"insufficient points: {available} available, {requested} requested")


class VoucherGenerationExhaustedError(LoyaltyError):
    pass
