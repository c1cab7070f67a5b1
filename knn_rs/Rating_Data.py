from knn_rs.errors import ArgumentError


class Rating_Data:
    """
    Sparse (user, item) -> rating table, indexed both ways.

    by_user[u] = {item: rating}
    by_item[i] = {user: rating}

    Also serves as the observation membership table of the KNN predictors:
    a pair is observed iff it has a rating.
    """

    def __init__(self):
        self.by_user = {}
        self.by_item = {}
        self.max_user_id = -1
        self.max_item_id = -1
        self._count = 0
        self._sum = 0.0

    @classmethod
    def from_records(cls, records):
        data = cls()
        data.add_all(records)
        return data

    def __len__(self):
        return self._count

    def __iter__(self):
        for u, items in self.by_user.items():
            for i, r in items.items():
                yield u, i, r

    def __contains__(self, pair):
        return self.is_observed(*pair)

    # --- lookup ---

    def is_observed(self, user_id, item_id):
        items = self.by_user.get(user_id)
        return items is not None and item_id in items

    def value(self, user_id, item_id):
        return self.by_user[user_id][item_id]

    def rows(self, entity_type):
        """Ratings grouped by entity_type ('user' or 'item')."""
        if entity_type == 'user':
            return self.by_user
        if entity_type == 'item':
            return self.by_item
        raise ArgumentError(f"Unknown entity type: {entity_type!r}")

    def max_id(self, entity_type):
        return self.max_user_id if entity_type == 'user' else self.max_item_id

    @property
    def global_mean(self):
        if self._count == 0:
            return float('nan')
        return self._sum / self._count

    # --- mutation ---

    @staticmethod
    def _check_ids(user_id, item_id):
        if user_id < 0 or item_id < 0:
            raise ArgumentError(f"Entity IDs must be non-negative: ({user_id}, {item_id})")

    def add(self, user_id, item_id, rating):
        self._check_ids(user_id, item_id)
        rating = float(rating)
        if self.is_observed(user_id, item_id):
            self._sum -= self.by_user[user_id][item_id]
        else:
            self._count += 1
        self._sum += rating

        self.by_user.setdefault(user_id, {})[item_id] = rating
        self.by_item.setdefault(item_id, {})[user_id] = rating
        self.max_user_id = max(self.max_user_id, user_id)
        self.max_item_id = max(self.max_item_id, item_id)

    def update(self, user_id, item_id, rating):
        if not self.is_observed(user_id, item_id):
            raise ArgumentError(f"Cannot update unknown rating ({user_id}, {item_id})")
        self.add(user_id, item_id, rating)

    def remove(self, user_id, item_id):
        if not self.is_observed(user_id, item_id):
            raise ArgumentError(f"Cannot remove unknown rating ({user_id}, {item_id})")

        self._sum -= self.by_user[user_id].pop(item_id)
        del self.by_item[item_id][user_id]
        self._count -= 1
        # empty rows are dropped, max IDs are not lowered
        if not self.by_user[user_id]:
            del self.by_user[user_id]
        if not self.by_item[item_id]:
            del self.by_item[item_id]

    # --- batches (validated before anything is changed) ---

    def check_records(self, records):
        """
        (user, item, rating) records as a list with float ratings.
        Raises ArgumentError for negative IDs or non-numeric ratings.
        """
        checked = []
        for u, i, r in records:
            self._check_ids(u, i)
            try:
                checked.append((u, i, float(r)))
            except (TypeError, ValueError) as e:
                raise ArgumentError(f"Rating of ({u}, {i}) is not a number: {r!r}") from e
        return checked

    def add_all(self, records):
        records = self.check_records(records)
        for u, i, r in records:
            self.add(u, i, r)
        return records

    def update_all(self, records):
        records = self.check_records(records)
        for u, i, _ in records:
            if not self.is_observed(u, i):
                raise ArgumentError(f"Cannot update unknown rating ({u}, {i})")
        for u, i, r in records:
            self.add(u, i, r)
        return records

    def remove_all(self, pairs):
        pairs = list(dict.fromkeys((rec[0], rec[1]) for rec in pairs))
        for u, i in pairs:
            if not self.is_observed(u, i):
                raise ArgumentError(f"Cannot remove unknown rating ({u}, {i})")
        for u, i in pairs:
            self.remove(u, i)
        return pairs
