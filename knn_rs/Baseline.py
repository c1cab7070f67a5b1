"""
Baseline estimators used by the KNN predictors as fallback and as the
centering term of the weighted neighbor sum.

All of them answer predict(user, item) for ANY pair of IDs, unseen ones
included; they fall back to a global value there.
"""
import logging
import math

from tqdm import tqdm

from knn_rs import config
from knn_rs.errors import NotFittedError

logger = logging.getLogger(__name__)


class Constant_Baseline:
    def __init__(self, value):
        self.value = float(value)

    def fit(self, ratings):
        return self

    def predict(self, user_id, item_id):
        return self.value

    def add_ratings(self, records):
        pass

    def update_ratings(self, records):
        pass

    def remove_ratings(self, records):
        pass


class Global_Average:
    """Mean of all ratings; midpoint of the rating range when there are none."""

    def __init__(self, min_rating=config.MIN_RATING, max_rating=config.MAX_RATING):
        self.min_rating = min_rating
        self.max_rating = max_rating
        self.ratings = None
        self.global_mean = None

    def fit(self, ratings):
        self.ratings = ratings
        self._compute_mean()
        return self

    def _compute_mean(self):
        mean = self.ratings.global_mean
        if math.isnan(mean):
            mean = (self.min_rating + self.max_rating) / 2
        self.global_mean = mean

    def predict(self, user_id, item_id):
        if self.global_mean is None: raise NotFittedError("Run .fit() first!")
        return self.global_mean

    def add_ratings(self, records):
        self._compute_mean()

    def update_ratings(self, records):
        self._compute_mean()

    def remove_ratings(self, records):
        self._compute_mean()


class User_Item_Baseline(Global_Average):
    """
    Pred(u, i) = mu + b_u + b_i

    Biases are regularized averages of the residuals, fitted alternately:
        b_u = Sum(r_ui - mu - b_i) / (reg_u + |I_u|)
        b_i = Sum(r_ui - mu - b_u) / (reg_i + |U_i|)
    """

    def __init__(self, reg_u=config.BASELINE_REG_U, reg_i=config.BASELINE_REG_I,
                 num_iter=config.BASELINE_NUM_ITER, min_rating=config.MIN_RATING,
                 max_rating=config.MAX_RATING, show_progress=config.SHOW_PROGRESS):
        super().__init__(min_rating, max_rating)
        self.reg_u = reg_u
        self.reg_i = reg_i
        self.num_iter = num_iter
        self.show_progress = show_progress
        self.user_biases = {}
        self.item_biases = {}

    def fit(self, ratings):
        self.ratings = ratings
        self._compute_mean()
        self.user_biases = {}
        self.item_biases = {}

        for _ in tqdm(range(self.num_iter), desc="Baseline", disable=not self.show_progress):
            for u in ratings.by_user:
                self._retrain_user(u)
            for i in ratings.by_item:
                self._retrain_item(i)

        logger.info("Baseline fitted. mu=%.4f, %d user biases, %d item biases",
                    self.global_mean, len(self.user_biases), len(self.item_biases))
        return self

    def _retrain_user(self, user_id):
        items = self.ratings.by_user.get(user_id)
        if not items:
            self.user_biases.pop(user_id, None)
            return
        residual = sum(r - self.global_mean - self.item_biases.get(i, 0.0)
                       for i, r in items.items())
        self.user_biases[user_id] = residual / (self.reg_u + len(items))

    def _retrain_item(self, item_id):
        users = self.ratings.by_item.get(item_id)
        if not users:
            self.item_biases.pop(item_id, None)
            return
        residual = sum(r - self.global_mean - self.user_biases.get(u, 0.0)
                       for u, r in users.items())
        self.item_biases[item_id] = residual / (self.reg_i + len(users))

    def predict(self, user_id, item_id):
        if self.global_mean is None: raise NotFittedError("Run .fit() first!")
        return (self.global_mean
                + self.user_biases.get(user_id, 0.0)
                + self.item_biases.get(item_id, 0.0))

    def _retrain_touched(self, records):
        # mu is kept fixed here so untouched biases stay consistent
        users = {rec[0] for rec in records}
        items = {rec[1] for rec in records}
        for u in users:
            self._retrain_user(u)
        for i in items:
            self._retrain_item(i)

    def add_ratings(self, records):
        self._retrain_touched(records)

    def update_ratings(self, records):
        self._retrain_touched(records)

    def remove_ratings(self, records):
        self._retrain_touched(records)
