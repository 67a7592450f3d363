"""
Model training and evaluation for hourly occupancy forecasts.

Fits a Ridge regression on cyclical hour-of-day features.
"""

import logging
from typing import Iterable

import numpy as np
import pandas as pd
from sklearn.linear_model import Ridge
from sklearn.metrics import mean_absolute_error

logger = logging.getLogger(__name__)


def build_hour_features(hours: Iterable[int]) -> pd.DataFrame:
    """
    Encode hours of day on the unit circle so 23:00 sits next to 00:00.

    Args:
        hours: Hours of day (0-23)

    Returns:
        DataFrame with hour_sin and hour_cos columns
    """
    radians = 2.0 * np.pi * np.asarray(list(hours), dtype=float) / 24.0
    return pd.DataFrame({"hour_sin": np.sin(radians), "hour_cos": np.cos(radians)})


def train_ridge_model(
    X_train: pd.DataFrame,
    y_train: pd.Series,
    alpha: float = 1.0
) -> Ridge:
    """
    Train a Ridge regression model.

    Higher alpha = more regularization (flatter daily curve).

    Args:
        X_train: Training feature matrix
        y_train: Training target values
        alpha: Regularization strength (default: 1.0)

    Returns:
        Fitted Ridge regression model
    """
    logger.info(f"Training Ridge regression model with alpha={alpha} on {len(X_train)} samples")

    model = Ridge(alpha=alpha, random_state=42)
    model.fit(X_train, y_train)

    return model


def evaluate_model(
    model: Ridge,
    X_test: pd.DataFrame,
    y_test: pd.Series
) -> dict:
    """
    Evaluate model fit.

    Args:
        model: Trained model
        X_test: Feature matrix
        y_test: Observed occupancy values

    Returns:
        Dictionary with mae and rmse
    """
    y_pred = np.clip(model.predict(X_test), 0, 100)

    mae = mean_absolute_error(y_test, y_pred)
    rmse = float(np.sqrt(np.mean((np.asarray(y_test, dtype=float) - y_pred) ** 2)))

    logger.info(f"Hourly model fit: MAE {mae:.2f}, RMSE {rmse:.2f}")

    return {"mae": float(mae), "rmse": rmse}
