from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from farmmarket.core.logging_config import get_logger
from farmmarket.core.rate_limit import rate_limit
from farmmarket.db.session import get_db
from farmmarket.models.outreach import ContactMessage, NewsletterSubscriber
from farmmarket.schemas.outreach import ContactCreate, NewsletterSubscribe, OutreachResponse

router = APIRouter()
logger = get_logger(__name__)


@router.post(
    "/contact",
    response_model=OutreachResponse,
    summary="Send a contact message",
    dependencies=[Depends(rate_limit("contact", 5, 60))],
)
def submit_contact(message: ContactCreate, db: Session = Depends(get_db)):
    """
    - **name**: Sender name
    - **email**: Reply address
    - **message**: Message body (max 5000 characters)
    """
    db.add(ContactMessage(name=message.name, email=message.email, message=message.message))
    db.commit()
    logger.info("Contact message received")
    return {"message": "Thank you for your message. We will get back to you soon!", "success": True}


@router.post(
    "/newsletter",
    response_model=OutreachResponse,
    summary="Subscribe to the newsletter",
    dependencies=[Depends(rate_limit("newsletter", 3, 60))],
)
def subscribe_newsletter(body: NewsletterSubscribe, db: Session = Depends(get_db)):
    email = body.email.lower()
    subscriber = db.query(NewsletterSubscriber).filter(NewsletterSubscriber.email == email).first()
    if subscriber is None:
        db.add(NewsletterSubscriber(email=email))
    else:
        subscriber.active = True
    db.commit()
    return {"message": "Successfully subscribed to newsletter!", "success": True}
