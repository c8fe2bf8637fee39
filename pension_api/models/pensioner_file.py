from datetime import datetime
from pension_api.extensions import db

# document kinds accepted from the registration / update forms
FILE_TYPES = ("idCard", "birthCertificate", "appointmentLetter", "retirementLetter", "passportPhoto")


class PensionerFile(db.Model):
    __tablename__ = "pensioner_files"

    id = db.Column(db.Integer, primary_key=True)
    pensioner_id = db.Column(db.Integer, db.ForeignKey("pensioners.id", ondelete="CASCADE"), nullable=False, index=True)
    file_type = db.Column(db.String(40), nullable=False)
    file_id = db.Column(db.String(64), nullable=False)       # id handed back by the object store
    storage_key = db.Column(db.Text, nullable=False)
    file_url = db.Column(db.Text, nullable=True)
    original_name = db.Column(db.String(255), nullable=True)
    content_type = db.Column(db.String(100), nullable=True)
    size_bytes = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    pensioner = db.relationship("Pensioner", back_populates="files")

    def to_dict(self):
        return {
            "id": self.id,
            "file_type": self.file_type,
            "url": self.file_url,
            "name": self.original_name,
            "content_type": self.content_type,
            "size": self.size_bytes,
            "uploaded_at": self.created_at.isoformat(),
        }
