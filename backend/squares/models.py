from datetime import datetime, timezone
import json

from squares import db

QUARTERS = ('firstQuarter', 'secondQuarter', 'thirdQuarter', 'final')


def utcnow():
    return datetime.now(timezone.utc)


class Game(db.Model):
    __tablename__ = 'game'
    id = db.Column(db.Integer, primary_key=True)
    game_code = db.Column(db.String(16), unique=True, nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    owner_email = db.Column(db.String(255), nullable=False)
    owner_password_hash = db.Column(db.String(128), nullable=True)
    status = db.Column(db.String(16), nullable=False, default='setup')  # setup, active, completed
    # Configuration
    square_cost = db.Column(db.Float, nullable=False, default=0)
    square_limit = db.Column(db.Integer, nullable=False, default=100)
    first_quarter_pct = db.Column(db.Float, nullable=False, default=25)
    second_quarter_pct = db.Column(db.Float, nullable=False, default=25)
    third_quarter_pct = db.Column(db.Float, nullable=False, default=25)
    final_pct = db.Column(db.Float, nullable=False, default=25)
    vertical_team = db.Column(db.String(64), nullable=False, default='Team 1')
    horizontal_team = db.Column(db.String(64), nullable=False, default='Team 2')
    # Label permutations, JSON-encoded lists of ten digits
    setup_rows = db.Column(db.Text, nullable=False)
    setup_cols = db.Column(db.Text, nullable=False)
    final_rows = db.Column(db.Text, nullable=True)
    final_cols = db.Column(db.Text, nullable=True)
    # Running score
    current_vertical = db.Column(db.Integer, nullable=False, default=0)
    current_horizontal = db.Column(db.Integer, nullable=False, default=0)
    current_quarter = db.Column(db.String(16), nullable=False, default='firstQuarter')
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    players = db.relationship('Player', back_populates='game', order_by='Player.id')
    squares = db.relationship('Square', back_populates='game', lazy='dynamic')
    quarter_scores = db.relationship('QuarterScore', back_populates='game', order_by='QuarterScore.id')

    @property
    def scoring(self):
        return {
            'firstQuarter': self.first_quarter_pct,
            'secondQuarter': self.second_quarter_pct,
            'thirdQuarter': self.third_quarter_pct,
            'final': self.final_pct,
        }

    @property
    def setup_grid(self):
        return json.loads(self.setup_rows), json.loads(self.setup_cols)

    @property
    def final_grid(self):
        """The (rows, cols) labels that decide winners, or None if never generated."""
        if not (self.final_rows and self.final_cols):
            return None
        return json.loads(self.final_rows), json.loads(self.final_cols)

    def is_owner(self, email):
        return isinstance(email, str) and email.strip().lower() == self.owner_email


class Player(db.Model):
    __tablename__ = 'player'
    __table_args__ = (
        db.UniqueConstraint('game_id', 'email', name='uq_player_game_email'),
    )
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    venmo_username = db.Column(db.String(64), nullable=True)
    has_paid = db.Column(db.Boolean, nullable=False, default=False)
    joined_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    game = db.relationship('Game', back_populates='players')
    squares = db.relationship('Square', back_populates='player', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'venmoUsername': self.venmo_username,
            'hasPaid': bool(self.has_paid),
        }


class Square(db.Model):
    __tablename__ = 'square'
    __table_args__ = (
        db.UniqueConstraint('game_id', 'row', 'col', name='uq_square_game_cell'),
        db.Index('ix_square_game_player', 'game_id', 'player_id'),
    )
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id'), nullable=False)
    row = db.Column(db.Integer, nullable=False)
    col = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    game = db.relationship('Game', back_populates='squares')
    player = db.relationship('Player', back_populates='squares')

    def to_dict(self):
        return {
            'id': self.id,
            'playerId': self.player_id,
            'row': self.row,
            'col': self.col,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


class QuarterScore(db.Model):
    __tablename__ = 'quarter_score'
    __table_args__ = (
        db.UniqueConstraint('game_id', 'quarter', name='uq_quarter_score_game_quarter'),
    )
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False)
    quarter = db.Column(db.String(16), nullable=False)
    vertical = db.Column(db.Integer, nullable=False)
    horizontal = db.Column(db.Integer, nullable=False)
    committed_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    game = db.relationship('Game', back_populates='quarter_scores')

    @property
    def score(self):
        return {'vertical': self.vertical, 'horizontal': self.horizontal}
